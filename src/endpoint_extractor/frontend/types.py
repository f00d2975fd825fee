"""Type handles and a small structural type checker.

Handles are lazy: an object type only enumerates its members when
``properties()`` is called, so self-referential declarations can be
represented without unbounded recursion. Callers that render nested
shapes are responsible for capping depth.
"""

from collections.abc import Callable
from dataclasses import dataclass

from tree_sitter import Node

from endpoint_extractor.frontend.nodes import (
    first_named,
    has_token,
    named_children,
    node_key,
    normalize_space,
    unquote,
)
from endpoint_extractor.frontend.project import Project, SourceFile
from endpoint_extractor.frontend.values import property_name

PRIMITIVE_TYPES = {
    "string", "number", "boolean", "null", "undefined", "any",
    "unknown", "never", "void", "object", "symbol", "bigint",
}
NULLISH_TYPES = {"null", "undefined"}
ARRAY_TYPE_NAMES = {"Array", "ReadonlyArray"}
COMPARISON_OPERATORS = {"==", "===", "!=", "!==", "<", ">", "<=", ">=", "instanceof", "in"}
ARITHMETIC_OPERATORS = {"-", "*", "/", "%", "**", "<<", ">>", ">>>", "&", "|", "^"}


@dataclass
class TypeMember:
    name: str
    type: "TypeHandle"
    optional: bool = False


class TypeHandle:
    """A resolved (or deliberately unresolved) TypeScript type.

    kind is one of: primitive, literal, array, union, object, reference, unknown.
    ``reference`` is a named type whose structure is not available
    (built-ins, external packages, unresolved names).
    """

    def __init__(
        self,
        kind: str,
        name: str | None = None,
        *,
        module_path: str | None = None,
        element: "TypeHandle | None" = None,
        options: list["TypeHandle"] | None = None,
        type_arguments: list["TypeHandle"] | None = None,
        key: tuple | None = None,
        members: Callable[[], list[TypeMember]] | None = None,
    ):
        self.kind = kind
        self.name = name
        self.module_path = module_path
        self.element = element
        self.options = options or []
        self.type_arguments = type_arguments or []
        self.key = key
        self._member_factory = members
        self._members: list[TypeMember] | None = None

    def __repr__(self) -> str:
        return f"TypeHandle({self.kind!r}, {self.name!r})"

    @classmethod
    def primitive(cls, name: str) -> "TypeHandle":
        return cls("primitive", name)

    @classmethod
    def literal(cls, text: str) -> "TypeHandle":
        return cls("literal", text)

    @classmethod
    def array(cls, element: "TypeHandle") -> "TypeHandle":
        return cls("array", element=element)

    @classmethod
    def union(cls, options: list["TypeHandle"]) -> "TypeHandle":
        flat: list[TypeHandle] = []
        for option in options:
            flat.extend(option.options if option.is_union else [option])
        if len(flat) == 1:
            return flat[0]
        return cls("union", options=flat)

    @classmethod
    def reference(cls, name: str, module_path: str | None = None, type_arguments=None) -> "TypeHandle":
        return cls("reference", name, module_path=module_path, type_arguments=type_arguments)

    @classmethod
    def unknown(cls) -> "TypeHandle":
        return cls("unknown", "unknown")

    @property
    def is_primitive(self) -> bool:
        return self.kind == "primitive"

    @property
    def is_literal(self) -> bool:
        return self.kind == "literal"

    @property
    def is_array(self) -> bool:
        return self.kind == "array"

    @property
    def is_union(self) -> bool:
        return self.kind == "union"

    @property
    def is_object(self) -> bool:
        return self.kind == "object"

    def element_type(self) -> "TypeHandle | None":
        return self.element

    def union_types(self) -> list["TypeHandle"]:
        return list(self.options)

    def properties(self) -> list[TypeMember]:
        if self._members is None:
            self._members = self._member_factory() if self._member_factory else []
        return self._members

    def with_identity(self, name: str, module_path: str, key: tuple) -> "TypeHandle":
        """Copy of an anonymous object type carrying a declaration's identity."""
        return TypeHandle(
            self.kind,
            name,
            module_path=module_path,
            element=self.element,
            options=self.options,
            type_arguments=self.type_arguments,
            key=key,
            members=self._member_factory,
        )


def _merge_members(groups: list[list[TypeMember]]) -> list[TypeMember]:
    """Later groups override earlier members with the same name, keeping first-seen order."""
    merged: dict[str, TypeMember] = {}
    for group in groups:
        for member in group:
            merged[member.name] = member
    return list(merged.values())


class TypeChecker:
    """Resolves type annotations and infers the type of simple expressions."""

    def __init__(self, project: Project):
        self.project = project
        self._resolving: set[tuple[str, str]] = set()
        self._expanding: set[tuple] = set()
        self._inferring: set[tuple] = set()

    # Type annotations ----------------------------------------------------

    def type_from_node(self, node: Node | None, file: SourceFile, env: dict | None = None) -> TypeHandle:
        if node is None:
            return TypeHandle.unknown()
        env = env or {}
        kind = node.type

        if kind in ("type_annotation", "opting_type_annotation", "omitting_type_annotation"):
            return self.type_from_node(first_named(node), file, env)
        if kind == "predefined_type":
            return TypeHandle.primitive(file.text_of(node))
        if kind == "literal_type":
            return self._literal_type(first_named(node), file)
        if kind == "type_identifier":
            return self.resolve_type_name(file.text_of(node), file, env)
        if kind == "generic_type":
            return self._generic_type(node, file, env)
        if kind == "array_type":
            return TypeHandle.array(self.type_from_node(first_named(node), file, env))
        if kind in ("readonly_type", "parenthesized_type"):
            return self.type_from_node(first_named(node), file, env)
        if kind == "union_type":
            return TypeHandle.union([self.type_from_node(c, file, env) for c in named_children(node)])
        if kind == "intersection_type":
            parts = [self.type_from_node(c, file, env) for c in named_children(node)]
            return TypeHandle(
                "object",
                members=lambda: _merge_members([part.properties() for part in parts]),
            )
        if kind == "object_type":
            return TypeHandle(
                "object",
                key=(str(file.path), *node_key(node)),
                members=lambda: self._signature_members(node, file, env),
            )
        return TypeHandle.reference(normalize_space(file.text_of(node)))

    def resolve_type_name(
        self,
        name: str,
        file: SourceFile,
        env: dict | None = None,
        type_arguments: list[TypeHandle] | None = None,
    ) -> TypeHandle:
        """Resolve a type name through generics, local declarations, imports and the project index."""
        env = env or {}
        if name in env:
            return env[name]
        if name in PRIMITIVE_TYPES:
            return TypeHandle.primitive(name)

        guard = (str(file.path), name)
        if guard in self._resolving:
            return TypeHandle.reference(name)
        self._resolving.add(guard)
        try:
            found = self._lookup_declaration(name, file)
            if found is None:
                binding = file.import_map.get(name)
                module = binding.specifier if binding and not binding.is_relative else None
                return TypeHandle.reference(name, module_path=module, type_arguments=type_arguments)
            decl_file, decl = found
            return self.declaration_type(decl, decl_file, type_arguments)
        finally:
            self._resolving.discard(guard)

    def declaration_type(
        self,
        decl: Node,
        file: SourceFile,
        type_arguments: list[TypeHandle] | None = None,
    ) -> TypeHandle:
        name = file.text_of(decl.child_by_field_name("name"))
        env = self._bind_type_parameters(decl, file, type_arguments or [])
        module_path = str(file.path)
        key = (module_path, *node_key(decl))

        if decl.type == "interface_declaration":
            return TypeHandle(
                "object", name, module_path=module_path, key=key,
                members=lambda: self._expand(key, lambda: self._interface_members(decl, file, env)),
            )
        if decl.type in ("class_declaration", "abstract_class_declaration"):
            return TypeHandle(
                "object", name, module_path=module_path, key=key,
                members=lambda: self._expand(key, lambda: self._class_members(decl, file, env)),
            )
        if decl.type == "type_alias_declaration":
            aliased = self.type_from_node(decl.child_by_field_name("value"), file, env)
            if aliased.is_object and aliased.name is None:
                return aliased.with_identity(name, module_path, key)
            return aliased
        return TypeHandle.reference(name, module_path=module_path)

    def _lookup_declaration(self, name: str, file: SourceFile) -> tuple[SourceFile, Node] | None:
        local = file.type_declarations.get(name)
        if local is not None:
            return file, local

        binding = file.import_map.get(name)
        if binding is not None:
            if not binding.is_relative:
                return None
            target_path = self.project.resolve_module(file.path, binding.specifier)
            if target_path is None:
                return None
            try:
                target = self.project.get_source_file(target_path)
            except (OSError, UnicodeDecodeError):
                return None
            if target is None:
                return None
            decl = target.type_declarations.get(binding.imported_name)
            return (target, decl) if decl is not None else None

        candidates = self.project.find_type_declarations(name)
        return candidates[0] if candidates else None

    def _bind_type_parameters(self, decl: Node, file: SourceFile, type_arguments: list[TypeHandle]) -> dict:
        params_node = decl.child_by_field_name("type_parameters")
        env = {}
        params = [p for p in named_children(params_node) if p.type == "type_parameter"]
        for index, param in enumerate(params):
            name_node = param.child_by_field_name("name")
            if name_node is None:
                continue
            name = file.text_of(name_node)
            if index < len(type_arguments):
                env[name] = type_arguments[index]
            else:
                default = param.child_by_field_name("value")
                env[name] = self.type_from_node(first_named(default), file) if default else TypeHandle.reference(name)
        return env

    def _generic_type(self, node: Node, file: SourceFile, env: dict) -> TypeHandle:
        name = file.text_of(node.child_by_field_name("name"))
        args_node = node.child_by_field_name("type_arguments")
        args = [self.type_from_node(arg, file, env) for arg in named_children(args_node)]
        if name in ARRAY_TYPE_NAMES and args:
            return TypeHandle.array(args[0])
        return self.resolve_type_name(name, file, env, args)

    def _literal_type(self, node: Node | None, file: SourceFile) -> TypeHandle:
        if node is None:
            return TypeHandle.unknown()
        if node.type in NULLISH_TYPES:
            return TypeHandle.primitive(node.type)
        if node.type == "string":
            return TypeHandle.literal(f"'{unquote(file.text_of(node))}'")
        return TypeHandle.literal(file.text_of(node))

    def _expand(self, key: tuple, factory: Callable[[], list[TypeMember]]) -> list[TypeMember]:
        if key in self._expanding:
            return []
        self._expanding.add(key)
        try:
            return factory()
        finally:
            self._expanding.discard(key)

    def _signature_members(self, body: Node, file: SourceFile, env: dict) -> list[TypeMember]:
        members = []
        for child in named_children(body):
            if child.type != "property_signature":
                continue
            name_node = child.child_by_field_name("name")
            if name_node is None:
                continue
            type_node = child.child_by_field_name("type")
            members.append(
                TypeMember(
                    name=property_name(name_node, file.text_of),
                    type=self.type_from_node(type_node, file, env) if type_node else TypeHandle.primitive("any"),
                    optional=has_token(child, "?"),
                )
            )
        return members

    def _interface_members(self, decl: Node, file: SourceFile, env: dict) -> list[TypeMember]:
        groups = []
        for child in decl.children:
            if child.type == "extends_type_clause":
                for base in named_children(child):
                    groups.append(self.type_from_node(base, file, env).properties())
        body = decl.child_by_field_name("body")
        if body is not None:
            groups.append(self._signature_members(body, file, env))
        return _merge_members(groups)

    def _class_members(self, decl: Node, file: SourceFile, env: dict) -> list[TypeMember]:
        groups = []
        heritage = next((c for c in decl.children if c.type == "class_heritage"), None)
        clause = next((c for c in named_children(heritage) if c.type == "extends_clause"), None)
        base = (clause.child_by_field_name("value") or first_named(clause)) if clause else None
        if base is not None and base.type == "identifier":
            groups.append(self.resolve_type_name(file.text_of(base), file).properties())

        fields = []
        for child in named_children(decl.child_by_field_name("body")):
            if child.type not in ("public_field_definition", "field_definition"):
                continue
            if has_token(child, "static"):
                continue
            name_node = child.child_by_field_name("name") or child.child_by_field_name("property")
            if name_node is None:
                continue
            type_node = child.child_by_field_name("type")
            value = child.child_by_field_name("value")
            if type_node is not None:
                member_type = self.type_from_node(type_node, file, env)
            elif value is not None:
                member_type = self.type_of_expression(value, file)
            else:
                member_type = TypeHandle.primitive("any")
            fields.append(
                TypeMember(
                    name=property_name(name_node, file.text_of),
                    type=member_type,
                    optional=has_token(child, "?"),
                )
            )
        groups.append(fields)
        return _merge_members(groups)

    # Expressions ---------------------------------------------------------

    def type_of_expression(self, node: Node | None, file: SourceFile) -> TypeHandle:
        if node is None:
            return TypeHandle.unknown()
        kind = node.type

        if kind == "string" or kind == "template_string":
            return TypeHandle.primitive("string")
        if kind == "number":
            return TypeHandle.primitive("number")
        if kind in ("true", "false"):
            return TypeHandle.primitive("boolean")
        if kind in NULLISH_TYPES:
            return TypeHandle.primitive(kind)
        if kind == "object":
            return TypeHandle(
                "object",
                key=(str(file.path), *node_key(node)),
                members=lambda: self._object_literal_members(node, file),
            )
        if kind == "array":
            elements = [c for c in named_children(node) if c.type != "spread_element"]
            if not elements:
                return TypeHandle.array(TypeHandle.primitive("never"))
            return TypeHandle.array(self.type_of_expression(elements[0], file))
        if kind in ("parenthesized_expression", "non_null_expression"):
            return self.type_of_expression(first_named(node), file)
        if kind in ("as_expression", "satisfies_expression"):
            children = named_children(node)
            asserted = children[-1] if len(children) > 1 else None
            if asserted is None or file.text_of(asserted) == "const":
                return self.type_of_expression(children[0] if children else None, file)
            return self.type_from_node(asserted, file)
        if kind == "await_expression":
            return self._awaited(self.type_of_expression(first_named(node), file))
        if kind in ("identifier", "shorthand_property_identifier"):
            return self._identifier_type(node, file)
        if kind == "member_expression":
            return self._member_type(node, file)
        if kind == "call_expression":
            return self._call_type(node, file)
        if kind == "new_expression":
            ctor = node.child_by_field_name("constructor")
            if ctor is not None and ctor.type == "identifier":
                return self.resolve_type_name(file.text_of(ctor), file)
            return TypeHandle.unknown()
        if kind == "ternary_expression":
            return TypeHandle.union([
                self.type_of_expression(node.child_by_field_name("consequence"), file),
                self.type_of_expression(node.child_by_field_name("alternative"), file),
            ])
        if kind == "unary_expression":
            return self._unary_type(node, file)
        if kind == "binary_expression":
            return self._binary_type(node, file)
        return TypeHandle.unknown()

    def _object_literal_members(self, node: Node, file: SourceFile) -> list[TypeMember]:
        groups: list[list[TypeMember]] = [[]]
        for child in named_children(node):
            if child.type == "pair":
                key = child.child_by_field_name("key")
                if key is None or key.type == "computed_property_name":
                    continue
                groups[-1].append(
                    TypeMember(property_name(key, file.text_of), self.type_of_expression(child.child_by_field_name("value"), file))
                )
            elif child.type == "shorthand_property_identifier":
                groups[-1].append(TypeMember(file.text_of(child), self._identifier_type(child, file)))
            elif child.type == "spread_element":
                groups.append(self.type_of_expression(first_named(child), file).properties())
                groups.append([])
        return _merge_members(groups)

    def _identifier_type(self, node: Node, file: SourceFile) -> TypeHandle:
        name = file.text_of(node)
        if name == "undefined":
            return TypeHandle.primitive("undefined")
        binding = file.find_binding(node, name)
        if binding is None:
            return TypeHandle.unknown()

        guard = (str(file.path), *node_key(binding))
        if guard in self._inferring:
            return TypeHandle.unknown()
        self._inferring.add(guard)
        try:
            type_node = binding.child_by_field_name("type")
            if type_node is not None:
                return self.type_from_node(type_node, file)
            if binding.type == "variable_declarator":
                name_node = binding.child_by_field_name("name")
                value = binding.child_by_field_name("value")
                if value is not None and name_node is not None and name_node.type == "identifier":
                    return self.type_of_expression(value, file)
            return TypeHandle.unknown()
        finally:
            self._inferring.discard(guard)

    def _member_type(self, node: Node, file: SourceFile) -> TypeHandle:
        owner = self.type_of_expression(node.child_by_field_name("object"), file)
        prop = node.child_by_field_name("property")
        if prop is None:
            return TypeHandle.unknown()
        name = file.text_of(prop)
        if owner.is_array and name == "length":
            return TypeHandle.primitive("number")
        if owner.is_object:
            member = next((m for m in owner.properties() if m.name == name), None)
            if member is not None:
                return member.type
        return TypeHandle.unknown()

    def _call_type(self, node: Node, file: SourceFile) -> TypeHandle:
        callee = node.child_by_field_name("function")
        if callee is None or callee.type != "identifier":
            return TypeHandle.unknown()
        function = file.find_function(file.text_of(callee))
        if function is None:
            return TypeHandle.unknown()
        return self.type_from_node(function.child_by_field_name("return_type"), file)

    def _unary_type(self, node: Node, file: SourceFile) -> TypeHandle:
        operator = node.child_by_field_name("operator")
        op = file.text_of(operator) if operator is not None else ""
        if op == "!" or op == "delete":
            return TypeHandle.primitive("boolean")
        if op == "typeof":
            return TypeHandle.primitive("string")
        if op in ("-", "+", "~"):
            return TypeHandle.primitive("number")
        return TypeHandle.primitive("undefined") if op == "void" else TypeHandle.unknown()

    def _binary_type(self, node: Node, file: SourceFile) -> TypeHandle:
        operator = node.child_by_field_name("operator")
        op = file.text_of(operator) if operator is not None else ""
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if op in COMPARISON_OPERATORS:
            return TypeHandle.primitive("boolean")
        if op in ARITHMETIC_OPERATORS:
            return TypeHandle.primitive("number")
        if op == "+":
            sides = [self.type_of_expression(left, file), self.type_of_expression(right, file)]
            if any(s.is_primitive and s.name == "string" for s in sides):
                return TypeHandle.primitive("string")
            return TypeHandle.primitive("number")
        if op in ("&&", "||", "??"):
            return TypeHandle.union([self.type_of_expression(left, file), self.type_of_expression(right, file)])
        return TypeHandle.unknown()

    @staticmethod
    def _awaited(handle: TypeHandle) -> TypeHandle:
        if handle.kind == "reference" and handle.name == "Promise" and handle.type_arguments:
            return handle.type_arguments[0]
        return handle
