"""Decorators and their arguments as plain value records.

Route, guard and module logic never looks at syntax nodes for decorator
arguments. It sees strings, numbers, booleans, None, lists and dicts, plus
three wrappers for things that are not literals: a Reference to a name,
a CallValue, and an opaque Expression.
"""

from dataclasses import dataclass, field

from tree_sitter import Node

from endpoint_extractor.frontend.nodes import (
    call_arguments,
    first_named,
    is_plain_template,
    line_of,
    named_children,
    unquote,
)


@dataclass(frozen=True)
class Reference:
    """An identifier or dotted name, e.g. ``AuthGuard`` or ``Roles.ADMIN``."""

    name: str

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class CallValue:
    """A call such as ``AuthGuard('jwt')`` or ``ConfigModule.forRoot()``."""

    callee: str
    arguments: tuple = ()

    @property
    def simple_name(self) -> str:
        return self.callee.rsplit(".", 1)[-1]


@dataclass(frozen=True)
class Expression:
    """Anything else, kept as source text."""

    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Decorator:
    name: str
    arguments: tuple = ()
    line: int = 0
    node: Node | None = field(default=None, compare=False, repr=False)


def to_value(node: Node, text_of):
    """Convert an expression node to a value record.

    ``text_of`` maps a node to its source text (SourceFile.text_of).
    """
    kind = node.type
    if kind == "string":
        return unquote(text_of(node))
    if kind == "template_string":
        return unquote(text_of(node)) if is_plain_template(node) else Expression(text_of(node))
    if kind == "number":
        return _number(text_of(node))
    if kind == "true":
        return True
    if kind == "false":
        return False
    if kind in ("null", "undefined"):
        return None
    if kind == "array":
        return [to_value(child, text_of) for child in named_children(node) if child.type != "spread_element"]
    if kind == "object":
        return _object(node, text_of)
    if kind in ("identifier", "member_expression", "this"):
        return Reference(text_of(node))
    if kind == "call_expression":
        callee = node.child_by_field_name("function")
        return CallValue(
            callee=text_of(callee),
            arguments=tuple(to_value(arg, text_of) for arg in call_arguments(node)),
        )
    if kind == "new_expression":
        ctor = node.child_by_field_name("constructor")
        return CallValue(
            callee=text_of(ctor) if ctor else "",
            arguments=tuple(to_value(arg, text_of) for arg in call_arguments(node)),
        )
    if kind in ("parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"):
        inner = first_named(node)
        if inner is not None:
            return to_value(inner, text_of)
    if kind == "unary_expression":
        operand = node.child_by_field_name("argument")
        operator = node.child_by_field_name("operator")
        if operand is not None and operand.type == "number" and operator is not None:
            value = _number(text_of(operand))
            if isinstance(value, (int, float)) and text_of(operator) == "-":
                return -value
    return Expression(text_of(node))


def decorator_from_node(node: Node, text_of) -> Decorator:
    expr = first_named(node)
    if expr is None:
        return Decorator(name="", line=line_of(node), node=node)

    arguments: tuple = ()
    target = expr
    if expr.type == "call_expression":
        target = expr.child_by_field_name("function")
        arguments = tuple(to_value(arg, text_of) for arg in call_arguments(expr))

    name = text_of(target).rsplit(".", 1)[-1] if target is not None else ""
    return Decorator(name=name, arguments=arguments, line=line_of(node), node=node)


def _object(node: Node, text_of) -> dict:
    result = {}
    for child in named_children(node):
        if child.type == "pair":
            key = child.child_by_field_name("key")
            value = child.child_by_field_name("value")
            if key is None or value is None:
                continue
            result[property_name(key, text_of)] = to_value(value, text_of)
        elif child.type == "shorthand_property_identifier":
            name = text_of(child)
            result[name] = Reference(name)
        elif child.type == "method_definition":
            key = child.child_by_field_name("name")
            if key is not None:
                result[property_name(key, text_of)] = Expression(text_of(child))
    return result


def property_name(node: Node, text_of) -> str:
    if node.type == "string":
        return unquote(text_of(node))
    return text_of(node)


def _number(text: str):
    try:
        return int(text, 0)
    except ValueError:
        pass
    try:
        return float(text.replace("_", ""))
    except ValueError:
        return Expression(text)
