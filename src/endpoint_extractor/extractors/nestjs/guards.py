"""Decide whether a guard class enforces authentication."""

import re

from endpoint_extractor.config.models import GuardAuthConfig
from endpoint_extractor.extractors.base import AuthGuardResult
from endpoint_extractor.frontend.project import ClassDecl, Project
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)

AUTH_BASE_CLASS = "AuthGuard"


class GuardAnalyzer:
    """Classifies guards by config lists, ``extends AuthGuard`` chains and name patterns.

    Inheritance results are memoised per class name for the lifetime of
    the analyzer; build a new analyzer for every extraction run.
    """

    def __init__(self, project: Project):
        self.project = project
        self._cache: dict[str, bool] = {}
        self._warned: set[str] = set()

    def is_auth_guard(
        self,
        name: str,
        guard_class: ClassDecl | None,
        config: GuardAuthConfig,
    ) -> AuthGuardResult:
        if name in config.exclude_guards:
            return AuthGuardResult(is_auth=False, confidence="high", reason="excluded")
        if name in config.auth_guards:
            return AuthGuardResult(is_auth=True, confidence="high", reason="config")

        target = guard_class or self.find_guard_class(name)
        if target is not None and self.check_auth_guard_inheritance(target):
            return AuthGuardResult(is_auth=True, confidence="high", reason="inheritance")

        for pattern in config.guard_patterns:
            try:
                matched = re.search(pattern, name)
            except re.error as e:
                logger.warning("Ignoring invalid guard pattern %r: %s", pattern, e)
                continue
            if matched:
                return AuthGuardResult(is_auth=True, confidence="medium", reason="pattern")

        return AuthGuardResult(is_auth=False, confidence="low", reason="unknown")

    def check_auth_guard_inheritance(self, guard_class: ClassDecl) -> bool:
        """True if ``guard_class`` extends ``AuthGuard``/``AuthGuard(...)`` directly or through project classes."""
        name = guard_class.name
        if not name:
            return False
        if name in self._cache:
            return self._cache[name]

        self._cache[name] = False
        result = self._analyze_chain(guard_class)
        self._cache[name] = result
        return result

    def find_guard_class(self, name: str) -> ClassDecl | None:
        candidates = self.project.find_classes(name)
        if not candidates:
            return None
        if len(candidates) > 1 and name not in self._warned:
            self._warned.add(name)
            logger.warning(
                "Guard %s is declared in %d files (%s); using %s",
                name,
                len(candidates),
                ", ".join(str(c.file.path) for c in candidates),
                candidates[0].file.path,
            )
        return candidates[0]

    def clear_cache(self) -> None:
        self._cache.clear()
        self._warned.clear()

    def _analyze_chain(self, guard_class: ClassDecl) -> bool:
        extends = guard_class.extends_text
        if not extends:
            return False
        if extends == AUTH_BASE_CLASS or extends.startswith(f"{AUTH_BASE_CLASS}("):
            return True
        if "(" in extends:
            return False

        base = self.find_guard_class(extends.strip())
        if base is None:
            return False
        return self.check_auth_guard_inheritance(base)
