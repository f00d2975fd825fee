"""Parse route files: ``fastify.get('/path', opts?, handler)`` style registrations."""

import re
from pathlib import Path

from tree_sitter import Node

from endpoint_extractor.config.models import HookAuthConfig
from endpoint_extractor.core.shapes import PARAM_MAX_DEPTH, ShapeResolver
from endpoint_extractor.extractors.base import Endpoint, EndpointResponses, ParamInfo
from endpoint_extractor.extractors.fastify.auth import FastifyAuthDetector
from endpoint_extractor.extractors.fastify.responses import ResponseExtractor
from endpoint_extractor.frontend.nodes import call_arguments, line_of, named_children, unquote
from endpoint_extractor.frontend.project import Project, SourceFile
from endpoint_extractor.frontend.types import TypeChecker

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options")
HANDLER_NODE_TYPES = ("arrow_function", "function_expression", "function")
PATH_PARAM_RE = re.compile(r":(\w+)")


def path_params_from(route_path: str) -> list[ParamInfo]:
    return [ParamInfo(name=name, type="string", required=True) for name in PATH_PARAM_RE.findall(route_path)]


class RouteFileParser:
    """Turns the HTTP-verb calls of one route file into endpoints."""

    def __init__(
        self,
        project: Project | None = None,
        auth_config: HookAuthConfig | None = None,
        extract_responses: bool = False,
        response_depth: int = 2,
        checker: TypeChecker | None = None,
    ):
        self.project = project or Project()
        self.checker = checker or TypeChecker(self.project)
        self.auth_detector = FastifyAuthDetector(auth_config or HookAuthConfig())
        self.extract_responses = extract_responses
        self.params = ShapeResolver(max_depth=PARAM_MAX_DEPTH)
        self.response_shapes = ShapeResolver(max_depth=response_depth)

    def parse(self, path: Path) -> list[Endpoint]:
        source_file = self.project.get_source_file(path)
        if source_file is None:
            raise FileNotFoundError(path)
        return self.parse_file(source_file)

    def parse_source(self, text: str, path: Path) -> list[Endpoint]:
        return self.parse_file(self.project.create_source_file(path, text))

    def parse_file(self, source_file: SourceFile) -> list[Endpoint]:
        responses = (
            ResponseExtractor(source_file, self.checker, self.response_shapes) if self.extract_responses else None
        )
        endpoints = []
        for call in source_file.calls():
            endpoint = self._endpoint(call, source_file, responses)
            if endpoint is not None:
                endpoints.append(endpoint)
        return endpoints

    def _endpoint(self, call: Node, source_file: SourceFile, responses: ResponseExtractor | None) -> Endpoint | None:
        method = self._http_method(call, source_file)
        if method is None:
            return None

        args = call_arguments(call)
        if len(args) < 2 or args[0].type != "string":
            return None
        route_path = unquote(source_file.text_of(args[0]))

        path_params, query_params, body_params = self._params(call, source_file, route_path)

        endpoint_responses = None
        if responses is not None:
            endpoint_responses = self._responses(args, responses)

        return Endpoint(
            path=route_path,
            method=method.upper(),
            path_params=path_params,
            query_params=query_params,
            body_params=body_params,
            auth=self.auth_detector.detect(args, source_file),
            source_file=str(source_file.path),
            line_number=line_of(call),
            responses=endpoint_responses,
        )

    def _params(self, call: Node, source_file: SourceFile, route_path: str):
        type_args = named_children(call.child_by_field_name("type_arguments"))
        if not type_args:
            return path_params_from(route_path), [], []

        route_type = self.checker.type_from_node(type_args[0], source_file)
        groups = {
            member.name: self.params.extract_properties(member.type)
            for member in route_type.properties()
        } if route_type.is_object else {}

        path_params = groups["Params"] if "Params" in groups else path_params_from(route_path)
        return path_params, groups.get("Querystring", []), groups.get("Body", [])

    @staticmethod
    def _responses(args: list[Node], responses: ResponseExtractor) -> EndpointResponses | None:
        handler = args[-1]
        if handler.type not in HANDLER_NODE_TYPES:
            return None
        return responses.extract_from_handler(handler)

    @staticmethod
    def _http_method(call: Node, source_file: SourceFile) -> str | None:
        callee = call.child_by_field_name("function")
        if callee is None or callee.type != "member_expression":
            return None
        prop = callee.child_by_field_name("property")
        if prop is None:
            return None
        name = source_file.text_of(prop).lower()
        return name if name in HTTP_METHODS else None
