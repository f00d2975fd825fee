"""Detect auth middleware wired into route hook arrays (``preHandler: [verifyToken]``)."""

from tree_sitter import Node

from endpoint_extractor.config.models import HookAuthConfig
from endpoint_extractor.extractors.base import AuthInfo
from endpoint_extractor.frontend.nodes import named_children, walk
from endpoint_extractor.frontend.project import SourceFile
from endpoint_extractor.frontend.values import property_name

HOOK_NAMES = {
    "preHandler", "onRequest", "preValidation", "preParsing", "preSerialization",
    "onSend", "onResponse", "onError", "onTimeout",
}
RESERVED_WORDS = {"async", "await", "function", "const", "let", "var"}
IDENTIFIER_NODE_TYPES = ("identifier", "property_identifier", "shorthand_property_identifier")


class FastifyAuthDetector:
    def __init__(self, config: HookAuthConfig):
        self.config = config

    def detect(self, args: list[Node], source_file: SourceFile) -> AuthInfo:
        """Classify a route from its call arguments.

        The first configured hook point with a matching middleware wins;
        hook points are never merged.
        """
        options = next((arg for arg in args if arg.type == "object"), None)
        if options is None:
            return AuthInfo(required=False)

        for hook_point in self.config.hook_points:
            hook = self._hook_property(options, hook_point, source_file)
            if hook is None:
                continue
            middlewares = [
                name for name in self._identifiers(hook, source_file) if self.is_auth_middleware(name)
            ]
            if middlewares:
                return AuthInfo(required=True, middlewares=middlewares, hook_point=hook_point)

        return AuthInfo(required=False)

    def is_auth_middleware(self, name: str) -> bool:
        lowered = name.lower()
        return any(auth_name.lower() in lowered for auth_name in self.config.middleware_names)

    @staticmethod
    def _hook_property(options: Node, hook_point: str, source_file: SourceFile) -> Node | None:
        for child in named_children(options):
            if child.type == "shorthand_property_identifier":
                if source_file.text_of(child) == hook_point:
                    return child
                continue
            if child.type not in ("pair", "method_definition"):
                continue
            key = child.child_by_field_name("key") or child.child_by_field_name("name")
            if key is not None and property_name(key, source_file.text_of) == hook_point:
                return child
        return None

    def _identifiers(self, hook: Node, source_file: SourceFile) -> list[str]:
        skipped = HOOK_NAMES | RESERVED_WORDS | set(self.config.hook_points)
        names = []
        for node in walk(hook):
            if node.type not in IDENTIFIER_NODE_TYPES:
                continue
            name = source_file.text_of(node)
            if name in skipped:
                continue
            names.append(name)
        return names
