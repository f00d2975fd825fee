"""Guard-convention auth detection for NestJS endpoints."""

from endpoint_extractor.config.models import GuardAuthConfig
from endpoint_extractor.extractors.base import DetectedGuard, EndpointAuth
from endpoint_extractor.extractors.nestjs.guards import GuardAnalyzer

HIGH_CONFIDENCE_REASONS = {"config", "inheritance", "excluded"}


class NestAuthDetector:
    def __init__(self, config: GuardAuthConfig, guard_analyzer: GuardAnalyzer):
        self.config = config
        self.guard_analyzer = guard_analyzer

    def detect_auth(self, controller, method, global_guards: list[str]) -> EndpointAuth:
        """Classify one controller method.

        Public markers win outright. Otherwise every guard from the
        global, class and method levels is classified and one auth guard
        is enough to require auth; no guards at all means 'unknown'.
        """
        if self.is_public(controller, method):
            return EndpointAuth(required=False, confidence="high", guards=[])

        guards = self._collect_guards(controller, method, global_guards)
        if any(g.is_auth_guard for g in guards):
            required = True
        elif not guards:
            required = "unknown"
        else:
            required = False

        return EndpointAuth(required=required, confidence=self._confidence(guards), guards=guards)

    def is_public(self, controller, method) -> bool:
        for meta in [*method.metadata, *controller.metadata]:
            if meta.name in self.config.public_decorators:
                return True
            if meta.key in self.config.public_metadata_keys and meta.value is not False:
                return True
        return False

    def _collect_guards(self, controller, method, global_guards: list[str]) -> list[DetectedGuard]:
        levels = [("global", list(global_guards))]
        levels.append(("class", [name for info in controller.guards for name in info.guards]))
        levels.append(("method", [name for info in method.guards for name in info.guards]))

        detected = []
        for level, names in levels:
            for name in names:
                result = self.guard_analyzer.is_auth_guard(name, None, self.config)
                detected.append(
                    DetectedGuard(name=name, level=level, is_auth_guard=result.is_auth, reason=result.reason)
                )
        return detected

    @staticmethod
    def _confidence(guards: list[DetectedGuard]) -> str:
        if not guards:
            return "low"
        if all(g.reason in HIGH_CONFIDENCE_REASONS for g in guards):
            return "high"
        if any(g.reason == "unknown" for g in guards):
            return "low"
        return "medium"
