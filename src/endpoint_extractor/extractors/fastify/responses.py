"""Extract success and error responses from a route handler body."""

from tree_sitter import Node

from endpoint_extractor.core.shapes import ShapeResolver
from endpoint_extractor.extractors.base import (
    EndpointResponses,
    ErrorResponseInfo,
    ParamInfo,
    ResponseInfo,
)
from endpoint_extractor.frontend.nodes import (
    call_arguments,
    first_named,
    line_of,
    named_children,
    node_key,
    unquote,
    walk_body,
)
from endpoint_extractor.frontend.project import SourceFile
from endpoint_extractor.frontend.types import TypeChecker
from endpoint_extractor.frontend.values import property_name

DEFAULT_REPLY_NAME = "reply"
STATUS_METHODS = ("code", "status")


class ResponseExtractor:
    """Finds ``return x``, ``reply.send(x)`` and ``reply.code(n).send(x)`` in one file's handlers."""

    def __init__(self, source_file: SourceFile, checker: TypeChecker, shapes: ShapeResolver):
        self.source_file = source_file
        self.checker = checker
        self.shapes = shapes
        self._type_cache: dict[tuple, list[ParamInfo]] = {}

    def extract_from_handler(self, handler: Node) -> EndpointResponses:
        reply_name = self._reply_name(handler)
        success: list[ResponseInfo] = []
        errors: list[ErrorResponseInfo] = []

        for node in walk_body(handler):
            if node.type == "return_statement":
                self._process_return(node, reply_name, success)
            elif node.type == "call_expression":
                self._process_send(node, reply_name, success, errors)

        return EndpointResponses(success=_dedupe(success), errors=_dedupe(errors))

    def _process_return(self, node: Node, reply_name: str, success: list[ResponseInfo]) -> None:
        expr = first_named(node)
        if expr is None or self._is_reply_chain(expr, reply_name):
            return
        success.append(
            ResponseInfo(code=200, data_type=self._data_type(expr), source="return", line_number=line_of(node))
        )

    def _process_send(
        self,
        call: Node,
        reply_name: str,
        success: list[ResponseInfo],
        errors: list[ErrorResponseInfo],
    ) -> None:
        callee = call.child_by_field_name("function")
        if callee is None or callee.type != "member_expression" or self._member_name(callee) != "send":
            return
        receiver = callee.child_by_field_name("object")
        if receiver is None:
            return

        if receiver.type == "identifier" and self.source_file.text_of(receiver) == reply_name:
            code, source = 200, "reply.send"
        elif receiver.type == "call_expression":
            code = self._chained_status(receiver)
            if code is None:
                return
            source = "reply.code"
        else:
            return

        args = call_arguments(call)
        data_node = args[0] if args else None
        data_type = self._data_type(data_node) if data_node is not None else []
        line = line_of(call)

        if code >= 400:
            message = self._literal_message(data_node) or self._message_from_type(data_type)
            errors.append(
                ErrorResponseInfo(
                    code=code,
                    message=message,
                    data_type=[p for p in data_type if p.name not in ("error", "message")],
                    line_number=line,
                )
            )
            return
        success.append(ResponseInfo(code=code, data_type=data_type, source=source, line_number=line))

    def _chained_status(self, call: Node) -> int | None:
        callee = call.child_by_field_name("function")
        if callee is None or callee.type != "member_expression":
            return None
        if self._member_name(callee) not in STATUS_METHODS:
            return None
        args = call_arguments(call)
        return self._status_code(args[0]) if args else None

    def _status_code(self, node: Node) -> int | None:
        if node.type == "number":
            try:
                return int(self.source_file.text_of(node), 10)
            except ValueError:
                return None
        if node.type == "identifier":
            value = self._initializer(node)
            return self._status_code(value) if value is not None and value.type == "number" else None
        return None

    def _initializer(self, identifier: Node) -> Node | None:
        binding = self.source_file.find_binding(identifier, self.source_file.text_of(identifier))
        if binding is None or binding.type != "variable_declarator":
            return None
        return binding.child_by_field_name("value")

    def _data_type(self, node: Node) -> list[ParamInfo]:
        key = node_key(node)
        if key not in self._type_cache:
            handle = self.checker.type_of_expression(node, self.source_file)
            self._type_cache[key] = self.shapes.extract_properties(handle)
        return self._type_cache[key]

    def _literal_message(self, node: Node | None) -> str | None:
        if node is None:
            return None
        if node.type == "identifier":
            return self._literal_message(self._initializer(node))
        if node.type != "object":
            return None
        for child in named_children(node):
            if child.type != "pair":
                continue
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if key is None or property_name(key, self.source_file.text_of) != "message":
                continue
            if value is not None and value.type == "string":
                return unquote(self.source_file.text_of(value))
        return None

    @staticmethod
    def _message_from_type(data_type: list[ParamInfo]) -> str:
        message = next((p for p in data_type if p.name == "message"), None)
        if message is None:
            return "string"
        if len(message.type) >= 2 and message.type[0] == message.type[-1] == "'":
            return message.type[1:-1]
        return message.type

    def _is_reply_chain(self, node: Node, reply_name: str) -> bool:
        current = node
        while current is not None and current.type in ("call_expression", "member_expression", "await_expression"):
            if current.type == "call_expression":
                current = current.child_by_field_name("function")
            elif current.type == "member_expression":
                current = current.child_by_field_name("object")
            else:
                current = first_named(current)
        if current is None or current is node:
            return False
        return current.type == "identifier" and self.source_file.text_of(current) == reply_name

    def _member_name(self, member: Node) -> str | None:
        prop = member.child_by_field_name("property")
        return self.source_file.text_of(prop) if prop is not None else None

    def _reply_name(self, handler: Node) -> str:
        params = [
            p for p in named_children(handler.child_by_field_name("parameters"))
            if p.type in ("required_parameter", "optional_parameter")
        ]
        if len(params) >= 2:
            pattern = params[1].child_by_field_name("pattern")
            if pattern is not None and pattern.type == "identifier":
                return self.source_file.text_of(pattern)
        return DEFAULT_REPLY_NAME


def _dedupe(responses: list) -> list:
    seen = set()
    result = []
    for response in responses:
        key = (response.code, response.line_number)
        if key in seen:
            continue
        seen.add(key)
        result.append(response)
    return result
