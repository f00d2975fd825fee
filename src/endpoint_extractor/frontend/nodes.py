"""Small helpers over tree-sitter syntax nodes."""

import re
from collections.abc import Iterator

from tree_sitter import Node

FUNCTION_NODE_TYPES = (
    "arrow_function",
    "function_expression",
    "function",
    "function_declaration",
    "generator_function",
    "generator_function_declaration",
    "method_definition",
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "b": "\b", "f": "\f", "v": "\v"}
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


def named_children(node: Node | None) -> list[Node]:
    """Named children without comments."""
    if node is None:
        return []
    return [child for child in node.named_children if child.type != "comment"]


def first_named(node: Node | None) -> Node | None:
    children = named_children(node)
    return children[0] if children else None


def walk(node: Node) -> Iterator[Node]:
    """Pre-order traversal of ``node`` and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def walk_body(node: Node) -> Iterator[Node]:
    """Like walk(), but does not descend into nested functions below ``node``."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        if current.type in FUNCTION_NODE_TYPES:
            continue
        stack.extend(reversed(current.children))


def call_arguments(call: Node) -> list[Node]:
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return []
    return named_children(args)


def node_key(node: Node) -> tuple[int, int, str]:
    """Hashable identity of a node within one syntax tree."""
    return (node.start_byte, node.end_byte, node.type)


def line_of(node: Node) -> int:
    return node.start_point[0] + 1


def has_token(node: Node, token: str) -> bool:
    """True if ``node`` has a direct anonymous child such as '?' or 'static'."""
    return any(child.type == token for child in node.children)


def normalize_space(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def unquote(text: str) -> str:
    """Value of a quoted string literal as written in source."""
    if len(text) >= 2 and text[0] in "'\"`" and text[-1] == text[0]:
        text = text[1:-1]
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text)


def is_plain_template(node: Node) -> bool:
    return node.type == "template_string" and not any(
        child.type == "template_substitution" for child in node.children
    )
