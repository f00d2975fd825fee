"""Read NestJS decorators: HTTP verbs, parameter bindings, guards and metadata."""

from dataclasses import dataclass, field
from typing import Any

from endpoint_extractor.config.models import CustomParamDecorator
from endpoint_extractor.frontend.project import ClassDecl, MethodDecl, ParameterDecl
from endpoint_extractor.frontend.values import CallValue, Decorator, Reference

HTTP_METHOD_DECORATORS = {
    "Get": "GET",
    "Post": "POST",
    "Put": "PUT",
    "Delete": "DELETE",
    "Patch": "PATCH",
    "Options": "OPTIONS",
    "Head": "HEAD",
    "All": "ALL",
}
PARAM_DECORATORS = ("Param", "Body", "Query", "Headers", "Req", "Res")
METADATA_KEYS = {
    "Public": "isPublic",
    "SkipAuth": "skipAuth",
    "Roles": "roles",
    "Permissions": "permissions",
}
SET_METADATA = "SetMetadata"


@dataclass(frozen=True)
class HttpMethodInfo:
    decorator: str  # Get / Post / ...
    path: str
    line: int

    @property
    def method(self) -> str:
        return HTTP_METHOD_DECORATORS[self.decorator]


@dataclass(frozen=True)
class ParamBinding:
    kind: str  # Param / Body / Query / Headers / Req / Res / custom
    arg_name: str | None
    parameter: ParameterDecl = field(compare=False)

    @property
    def name(self) -> str:
        return self.arg_name or self.parameter.name

    @property
    def required(self) -> bool:
        return not self.parameter.optional


@dataclass(frozen=True)
class GuardDecoratorInfo:
    guards: list[str]
    level: str  # class / method
    line: int


@dataclass(frozen=True)
class MetadataInfo:
    name: str
    key: str
    value: Any
    line: int


def _string_value(value) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (Reference, CallValue)):
        return None
    if value is None:
        return None
    return str(value).strip("'\"")


class DecoratorParser:
    """Classifies the decorators of controller classes and methods.

    ``custom_decorators`` are extra parameter decorators (e.g. ``@CurrentUser()``)
    recognised so they are not mistaken for request input.
    """

    def __init__(
        self,
        public_decorators: list[str] | None = None,
        custom_decorators: list[CustomParamDecorator] | None = None,
    ):
        self.public_decorators = list(public_decorators or [])
        self.custom_decorators = {d.name: d for d in custom_decorators or []}

    def parse_method_decorator(self, method: MethodDecl) -> HttpMethodInfo | None:
        for decorator in method.decorators:
            if decorator.name not in HTTP_METHOD_DECORATORS:
                continue
            path = _string_value(decorator.arguments[0]) if decorator.arguments else ""
            return HttpMethodInfo(decorator=decorator.name, path=path or "", line=decorator.line)
        return None

    def parse_param_decorators(self, method: MethodDecl) -> list[ParamBinding]:
        bindings = []
        for param in method.parameters:
            for decorator in param.decorators:
                if decorator.name in PARAM_DECORATORS:
                    kind = decorator.name
                elif decorator.name in self.custom_decorators:
                    kind = self.custom_decorators[decorator.name].type
                else:
                    continue
                arg_name = _string_value(decorator.arguments[0]) if decorator.arguments else None
                bindings.append(ParamBinding(kind=kind, arg_name=arg_name or None, parameter=param))
        return bindings

    def parse_guard_decorators(self, decl: ClassDecl | MethodDecl, level: str = "method") -> list[GuardDecoratorInfo]:
        results = []
        for decorator in decl.decorators:
            if decorator.name != "UseGuards":
                continue
            guards = [name for name in map(self._guard_name, decorator.arguments) if name]
            results.append(GuardDecoratorInfo(guards=guards, level=level, line=decorator.line))
        return results

    def parse_metadata_decorators(self, decl: ClassDecl | MethodDecl) -> list[MetadataInfo]:
        """Public markers and ``@SetMetadata(key, value)`` entries."""
        results = []
        for decorator in decl.decorators:
            if decorator.name == SET_METADATA:
                entry = self._set_metadata(decorator)
                if entry is not None:
                    results.append(entry)
            elif decorator.name in self.public_decorators:
                results.append(
                    MetadataInfo(
                        name=decorator.name,
                        key=self.infer_metadata_key(decorator.name),
                        value=self._decorator_value(decorator.arguments),
                        line=decorator.line,
                    )
                )
        return results

    def parse_controller_decorator(self, decl: ClassDecl) -> str:
        decorator = decl.get_decorator("Controller")
        if decorator is None or not decorator.arguments:
            return ""
        arg = decorator.arguments[0]
        if isinstance(arg, dict):
            arg = arg.get("path", "")
        if isinstance(arg, list):
            arg = arg[0] if arg else ""
        if isinstance(arg, Reference):
            return decl.file.string_constant(arg.name) or ""
        return _string_value(arg) or ""

    @staticmethod
    def infer_metadata_key(name: str) -> str:
        return METADATA_KEYS.get(name, name.lower())

    @staticmethod
    def _guard_name(value) -> str | None:
        if isinstance(value, Reference) and "." not in value.name:
            return value.name
        if isinstance(value, CallValue) and value.callee and "." not in value.callee:
            return value.callee
        return None

    def _set_metadata(self, decorator: Decorator) -> MetadataInfo | None:
        if not decorator.arguments:
            return None
        key = decorator.arguments[0]
        if isinstance(key, Reference):
            key = key.name
        if not isinstance(key, str):
            return None
        return MetadataInfo(
            name=SET_METADATA,
            key=key,
            value=self._decorator_value(decorator.arguments[1:]),
            line=decorator.line,
        )

    @staticmethod
    def _decorator_value(arguments: tuple):
        if not arguments:
            return True
        if len(arguments) == 1:
            return arguments[0]
        return list(arguments)
