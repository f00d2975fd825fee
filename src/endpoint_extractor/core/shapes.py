"""Turn type handles into flat ``ParamInfo`` lists and printable type strings."""

from endpoint_extractor.extractors.base import ParamInfo
from endpoint_extractor.frontend.types import NULLISH_TYPES, TypeHandle, TypeMember

PARAM_MAX_DEPTH = 5

BUILTIN_OBJECT_TYPES = {"Promise", "Date", "RegExp", "Error", "Map", "Set", "WeakMap", "WeakSet"}

FRAMEWORK_TYPE_PATTERNS = (
    "Fastify", "Raw", "RouteGeneric", "ContextConfig",
    "FastifyReply", "FastifyRequest", "FastifyInstance", "FastifyServer",
    "FastifyContext", "FastifyLoggerInstance", "FastifySchema",
    "RouteGenericInterface", "RawServerDefault", "RawRequestDefaultExpression",
    "RawReplyDefaultExpression", "ContextConfigDefault",
)

FRAMEWORK_MODULES = ("fastify", "@fastify/", "@nestjs/")
FRAMEWORK_MODULE_PATHS = (
    "node_modules/fastify", "node_modules/@fastify",
    "node_modules/.pnpm/fastify", "node_modules/.pnpm/@fastify",
    "node_modules/@nestjs",
)

ARRAY_METHODS = {
    "length", "toString", "toLocaleString", "pop", "push", "concat", "join",
    "reverse", "shift", "slice", "sort", "splice", "unshift", "indexOf",
    "lastIndexOf", "every", "some", "forEach", "map", "filter", "reduce",
    "reduceRight", "find", "findIndex", "fill", "copyWithin", "entries",
    "keys", "values", "includes", "flatMap", "flat", "at", "findLast",
    "findLastIndex", "toReversed", "toSorted", "toSpliced", "with",
}

# Names that only ever show up on reply/request/instance/logger objects.
# Generic names such as id, body, url or type are left alone.
FRAMEWORK_INTERNAL_MEMBERS = {
    "context", "log", "request", "server", "raw", "res", "req",
    "sent", "hijacked", "statusCode", "getHeaders",
    "hasHeader", "removeHeader", "getHeader",
    "redirect", "callNotFound", "serialize", "compileSerializationSchema",
    "getSerializationFunction", "serializeInput", "elapsedTime",
    "trailer", "hasTrailer", "removeTrailer", "then",
    "routerPath", "routerMethod", "is404", "socket", "ips",
    "routeOptions", "routeConfig", "routeSchema", "connection",
    "getValidationFunction", "compileValidationSchema", "validateInput",
    "prefix", "listeningOrigin", "addresses", "pluginName",
    "setNotFoundHandler", "setErrorHandler", "addHook", "decorateRequest",
    "decorateReply", "decorate", "hasDecorator", "hasRequestDecorator",
    "hasReplyDecorator", "inject", "listen", "route", "close", "ready",
    "register", "after", "setValidatorCompiler", "setSerializerCompiler",
    "child", "fatal", "warn", "info", "debug", "trace", "silent",
}


class ShapeResolver:
    """Renders type handles as ``ParamInfo`` fields.

    ``max_depth`` caps how many object levels are spelled out; deeper
    object types, and any declaration met again while rendering itself,
    print as their name.
    """

    def __init__(self, max_depth: int = PARAM_MAX_DEPTH):
        self.max_depth = max_depth

    def extract_properties(self, handle: TypeHandle) -> list[ParamInfo]:
        if handle.is_primitive or handle.is_literal:
            return []
        if handle.is_array:
            return [ParamInfo(name="items", type=f"{self.render(handle.element_type())}[]", required=True)]
        if handle.name in BUILTIN_OBJECT_TYPES or self.is_framework_type(handle):
            return []
        if handle.is_union:
            options = [o for o in handle.union_types() if not _is_nullish(o)]
            return self.extract_properties(options[0]) if len(options) == 1 else []
        if not handle.is_object:
            return []

        seen = {handle.key} if handle.key else set()
        return [
            ParamInfo(name=member.name, type=self.render(member.type, 1, seen), required=not member.optional)
            for member in self.visible_members(handle)
        ]

    def render(self, handle: TypeHandle | None, depth: int = 0, seen: set | None = None) -> str:
        if handle is None:
            return "unknown"
        seen = seen or set()

        if handle.is_primitive or handle.is_literal:
            return handle.name
        if self.is_framework_type(handle):
            return handle.name or "unknown"
        if handle.is_union:
            return " | ".join(self.render(option, depth, seen) for option in handle.union_types())
        if handle.is_array:
            return f"{self.render(handle.element_type(), depth, seen)}[]"
        if handle.is_object:
            return self._render_object(handle, depth, seen)
        return handle.name or "unknown"

    def _render_object(self, handle: TypeHandle, depth: int, seen: set) -> str:
        fallback = handle.name or "object"
        if handle.name in BUILTIN_OBJECT_TYPES:
            return handle.name
        if depth >= self.max_depth or (handle.key and handle.key in seen):
            return fallback

        inner = seen | {handle.key} if handle.key else seen
        members = self.visible_members(handle)
        if not members:
            return handle.name or "{}"
        fields = "; ".join(f"{m.name}: {self.render(m.type, depth + 1, inner)}" for m in members)
        return f"{{ {fields}; }}"

    @staticmethod
    def visible_members(handle: TypeHandle) -> list[TypeMember]:
        return [
            member
            for member in handle.properties()
            if not member.name.startswith("__@")
            and member.name not in ARRAY_METHODS
            and member.name not in FRAMEWORK_INTERNAL_MEMBERS
        ]

    @staticmethod
    def is_framework_type(handle: TypeHandle) -> bool:
        if handle.name and any(pattern in handle.name for pattern in FRAMEWORK_TYPE_PATTERNS):
            return True
        module = (handle.module_path or "").replace("\\", "/")
        if not module:
            return False
        return module.startswith(FRAMEWORK_MODULES) or module == "fastify" or any(
            part in module for part in FRAMEWORK_MODULE_PATHS
        )


def _is_nullish(handle: TypeHandle) -> bool:
    return handle.is_primitive and handle.name in NULLISH_TYPES
