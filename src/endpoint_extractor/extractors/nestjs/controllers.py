"""Parse ``@Controller`` classes into endpoints."""

import re
from dataclasses import dataclass, field

from endpoint_extractor.config.models import CustomParamDecorator
from endpoint_extractor.core.shapes import PARAM_MAX_DEPTH, ShapeResolver
from endpoint_extractor.extractors.base import (
    AuthInfo,
    Endpoint,
    EndpointAuth,
    EndpointResponses,
    ParamInfo,
    ResponseInfo,
)
from endpoint_extractor.extractors.nestjs.auth import NestAuthDetector
from endpoint_extractor.extractors.nestjs.decorators import (
    DecoratorParser,
    GuardDecoratorInfo,
    HttpMethodInfo,
    MetadataInfo,
    ParamBinding,
)
from endpoint_extractor.frontend.project import ClassDecl, MethodDecl, Project, SourceFile
from endpoint_extractor.frontend.types import TypeChecker, TypeHandle
from endpoint_extractor.frontend.values import Reference

PATH_PARAM_RE = re.compile(r":(\w+)")
WRAPPER_TYPES = ("Promise", "Observable")
EMPTY_RESPONSE_TYPES = ("void", "undefined", "never")

# Members of @nestjs/common's HttpStatus enum.
HTTP_STATUS_CODES = {
    "CONTINUE": 100,
    "SWITCHING_PROTOCOLS": 101,
    "PROCESSING": 102,
    "EARLYHINTS": 103,
    "OK": 200,
    "CREATED": 201,
    "ACCEPTED": 202,
    "NON_AUTHORITATIVE_INFORMATION": 203,
    "NO_CONTENT": 204,
    "RESET_CONTENT": 205,
    "PARTIAL_CONTENT": 206,
    "AMBIGUOUS": 300,
    "MOVED_PERMANENTLY": 301,
    "FOUND": 302,
    "SEE_OTHER": 303,
    "NOT_MODIFIED": 304,
    "TEMPORARY_REDIRECT": 307,
    "PERMANENT_REDIRECT": 308,
    "BAD_REQUEST": 400,
    "UNAUTHORIZED": 401,
    "PAYMENT_REQUIRED": 402,
    "FORBIDDEN": 403,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "NOT_ACCEPTABLE": 406,
    "PROXY_AUTHENTICATION_REQUIRED": 407,
    "REQUEST_TIMEOUT": 408,
    "CONFLICT": 409,
    "GONE": 410,
    "LENGTH_REQUIRED": 411,
    "PRECONDITION_FAILED": 412,
    "PAYLOAD_TOO_LARGE": 413,
    "URI_TOO_LONG": 414,
    "UNSUPPORTED_MEDIA_TYPE": 415,
    "REQUESTED_RANGE_NOT_SATISFIABLE": 416,
    "EXPECTATION_FAILED": 417,
    "I_AM_A_TEAPOT": 418,
    "MISDIRECTED": 421,
    "UNPROCESSABLE_ENTITY": 422,
    "FAILED_DEPENDENCY": 424,
    "PRECONDITION_REQUIRED": 428,
    "TOO_MANY_REQUESTS": 429,
    "INTERNAL_SERVER_ERROR": 500,
    "NOT_IMPLEMENTED": 501,
    "BAD_GATEWAY": 502,
    "SERVICE_UNAVAILABLE": 503,
    "GATEWAY_TIMEOUT": 504,
    "HTTP_VERSION_NOT_SUPPORTED": 505,
}


@dataclass
class ControllerMethodInfo:
    name: str
    http_method: HttpMethodInfo
    params: list[ParamBinding]
    guards: list[GuardDecoratorInfo]
    metadata: list[MetadataInfo]
    line: int
    decl: MethodDecl = field(repr=False)


@dataclass
class ControllerInfo:
    name: str
    base_path: str
    guards: list[GuardDecoratorInfo]
    metadata: list[MetadataInfo]
    methods: list[ControllerMethodInfo]
    source_file: SourceFile = field(repr=False)
    line: int = 0


def join_paths(base_path: str, method_path: str) -> str:
    base = base_path if base_path.startswith("/") else f"/{base_path}"
    if not method_path:
        return re.sub(r"/+", "/", base)
    return re.sub(r"/+", "/", f"{base}/{method_path}")


class ControllerParser:
    def __init__(
        self,
        project: Project | None = None,
        public_decorators: list[str] | None = None,
        custom_decorators: list[CustomParamDecorator] | None = None,
        extract_responses: bool = False,
        response_depth: int = 2,
        checker: TypeChecker | None = None,
    ):
        self.project = project or Project()
        self.checker = checker or TypeChecker(self.project)
        self.decorators = DecoratorParser(public_decorators, custom_decorators)
        self.extract_responses = extract_responses
        self.params = ShapeResolver(max_depth=PARAM_MAX_DEPTH)
        self.response_shapes = ShapeResolver(max_depth=response_depth)

    def parse_controller(self, source_file: SourceFile, class_name: str | None = None) -> ControllerInfo | None:
        """The first ``@Controller`` class in the file (or the one named ``class_name``)."""
        for decl in source_file.classes():
            if decl.get_decorator("Controller") is None:
                continue
            if class_name and decl.name != class_name:
                continue
            return self._controller(decl)
        return None

    def parse_source(self, text: str, path) -> ControllerInfo | None:
        return self.parse_controller(self.project.create_source_file(path, text))

    def _controller(self, decl: ClassDecl) -> ControllerInfo:
        methods = []
        for method in decl.methods:
            http_method = self.decorators.parse_method_decorator(method)
            if http_method is None:
                continue
            methods.append(
                ControllerMethodInfo(
                    name=method.name,
                    http_method=http_method,
                    params=self.decorators.parse_param_decorators(method),
                    guards=self.decorators.parse_guard_decorators(method, "method"),
                    metadata=self.decorators.parse_metadata_decorators(method),
                    line=method.line,
                    decl=method,
                )
            )
        return ControllerInfo(
            name=decl.name or "AnonymousController",
            base_path=self.decorators.parse_controller_decorator(decl),
            guards=self.decorators.parse_guard_decorators(decl, "class"),
            metadata=self.decorators.parse_metadata_decorators(decl),
            methods=methods,
            source_file=decl.file,
            line=decl.line,
        )

    def extract_endpoints(
        self,
        controller: ControllerInfo,
        global_guards: list[str],
        auth_detector: NestAuthDetector,
    ) -> list[Endpoint]:
        endpoints = []
        for method in controller.methods:
            full_path = join_paths(controller.base_path, method.http_method.path)
            auth = auth_detector.detect_auth(controller, method, global_guards)
            endpoints.append(
                Endpoint(
                    path=full_path,
                    method=method.http_method.method,
                    path_params=self._path_params(method, controller.source_file, full_path),
                    query_params=self._bound_params(method, "Query", controller.source_file),
                    body_params=self._bound_params(method, "Body", controller.source_file),
                    auth=self._auth_info(auth),
                    source_file=str(controller.source_file.path),
                    line_number=method.line,
                    responses=self._responses(method, controller.source_file) if self.extract_responses else None,
                )
            )
        return endpoints

    def _path_params(self, method: ControllerMethodInfo, source_file: SourceFile, full_path: str) -> list[ParamInfo]:
        params = self._bound_params(method, "Param", source_file)
        known = {p.name for p in params}
        for name in PATH_PARAM_RE.findall(full_path):
            if name not in known:
                params.append(ParamInfo(name=name, type="string", required=True))
                known.add(name)
        return params

    def _bound_params(self, method: ControllerMethodInfo, kind: str, source_file: SourceFile) -> list[ParamInfo]:
        params = []
        for binding in method.params:
            if binding.kind != kind:
                continue
            handle = self._parameter_type(binding, source_file)
            if binding.arg_name is None and handle.is_object:
                fields = self.params.extract_properties(handle)
                if fields:
                    params.extend(fields)
                    continue
            params.append(ParamInfo(name=binding.name, type=self.params.render(handle), required=binding.required))
        return params

    def _parameter_type(self, binding: ParamBinding, source_file: SourceFile) -> TypeHandle:
        type_node = binding.parameter.type_node
        if type_node is None:
            return TypeHandle.primitive("any")
        return self.checker.type_from_node(type_node, source_file)

    def _responses(self, method: ControllerMethodInfo, source_file: SourceFile) -> EndpointResponses:
        http_code = method.decl.get_decorator("HttpCode")
        code = None
        if http_code is not None and http_code.arguments:
            code = self._status_code(http_code.arguments[0], source_file)
        if code is None:
            code = 201 if method.http_method.method == "POST" else 200

        data_type: list[ParamInfo] = []
        type_name = None
        if method.decl.return_type_node is not None:
            handle = self._unwrap(self.checker.type_from_node(method.decl.return_type_node, source_file))
            if not (handle.is_primitive and handle.name in EMPTY_RESPONSE_TYPES):
                data_type = self.response_shapes.extract_properties(handle)
                type_name = handle.name if handle.kind in ("object", "reference") else None

        response = ResponseInfo(
            code=code,
            data_type=data_type,
            type_name=type_name,
            source="declared",
            line_number=method.line,
        )
        return EndpointResponses(success=[response], errors=[])

    @staticmethod
    def _status_code(value, source_file: SourceFile) -> int | None:
        """Resolve an ``@HttpCode`` argument: a literal, ``HttpStatus.X`` or a numeric const."""
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if not isinstance(value, Reference):
            return None
        if "." in value.name:
            return HTTP_STATUS_CODES.get(value.simple_name)
        return source_file.number_constant(value.name)

    @staticmethod
    def _unwrap(handle: TypeHandle) -> TypeHandle:
        while handle.kind == "reference" and handle.name in WRAPPER_TYPES and handle.type_arguments:
            handle = handle.type_arguments[0]
        return handle

    @staticmethod
    def _auth_info(auth: EndpointAuth) -> AuthInfo:
        return AuthInfo(
            required=auth.required,
            middlewares=[guard.name for guard in auth.guards],
            confidence=auth.confidence,
            guards=auth.guards,
        )
