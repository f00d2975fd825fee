"""TypeScript source model on top of tree-sitter.

A Project owns every parsed SourceFile of one run and keeps name indexes
over their class and type declarations, so cross-file lookups (guard
inheritance, DTO shapes) never rescan the file system.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from tree_sitter import Node
from tree_sitter_language_pack import get_parser

from endpoint_extractor.frontend.nodes import (
    FUNCTION_NODE_TYPES,
    first_named,
    line_of,
    named_children,
    unquote,
    walk,
)
from endpoint_extractor.frontend.values import Decorator, decorator_from_node
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)

SOURCE_SUFFIXES = (".ts", ".tsx")
IGNORED_DIRS = {"node_modules", "dist", "build", "coverage", ".git"}
MODULE_SUFFIXES = ("", ".ts", ".tsx", "/index.ts", "/index.tsx")

CLASS_NODE_TYPES = ("class_declaration", "abstract_class_declaration")
TYPE_DECLARATION_NODE_TYPES = (
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    *CLASS_NODE_TYPES,
)
SCOPE_NODE_TYPES = ("program", "statement_block", "switch_case", "switch_default")


@lru_cache(maxsize=None)
def _parser_for(suffix: str):
    return get_parser("tsx" if suffix == ".tsx" else "typescript")


@dataclass(frozen=True)
class ImportBinding:
    local_name: str
    imported_name: str
    specifier: str
    kind: str  # default / named / namespace

    @property
    def is_relative(self) -> bool:
        return self.specifier.startswith(".")


@dataclass
class ParameterDecl:
    name: str
    node: Node
    decorators: list[Decorator]
    type_node: Node | None
    optional: bool


@dataclass
class MethodDecl:
    name: str
    node: Node
    decorators: list[Decorator]
    parameters: list[ParameterDecl]
    return_type_node: Node | None
    line: int

    def get_decorator(self, name: str) -> Decorator | None:
        return next((d for d in self.decorators if d.name == name), None)


@dataclass
class ClassDecl:
    name: str
    node: Node
    file: "SourceFile"
    decorators: list[Decorator]
    methods: list[MethodDecl] = field(default_factory=list)
    extends_node: Node | None = None
    line: int = 0

    def get_decorator(self, name: str) -> Decorator | None:
        return next((d for d in self.decorators if d.name == name), None)

    def get_method(self, name: str) -> MethodDecl | None:
        return next((m for m in self.methods if m.name == name), None)

    @property
    def extends_text(self) -> str | None:
        if self.extends_node is None:
            return None
        return self.file.text_of(self.extends_node).strip()


class SourceFile:
    """One parsed TypeScript file."""

    def __init__(self, path: Path, text: str, project: "Project | None" = None):
        self.path = Path(path)
        self.text = text
        self.source = text.encode("utf-8")
        self.tree = _parser_for(self.path.suffix).parse(self.source)
        self.root = self.tree.root_node
        self.project = project
        self._imports: list[ImportBinding] | None = None
        self._classes: list[ClassDecl] | None = None
        self._type_declarations: dict[str, Node] | None = None

    def __repr__(self) -> str:
        return f"SourceFile({str(self.path)!r})"

    def text_of(self, node: Node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8")

    # Imports -------------------------------------------------------------

    @property
    def imports(self) -> list[ImportBinding]:
        if self._imports is None:
            self._imports = self._collect_imports()
        return self._imports

    @property
    def import_map(self) -> dict[str, ImportBinding]:
        return {binding.local_name: binding for binding in self.imports}

    def _collect_imports(self) -> list[ImportBinding]:
        bindings = []
        for statement in named_children(self.root):
            if statement.type != "import_statement":
                continue
            source = statement.child_by_field_name("source")
            if source is None:
                continue
            specifier = unquote(self.text_of(source))
            clause = next((c for c in statement.named_children if c.type == "import_clause"), None)
            if clause is None:
                continue
            for child in named_children(clause):
                if child.type == "identifier":
                    name = self.text_of(child)
                    bindings.append(ImportBinding(name, "default", specifier, "default"))
                elif child.type == "namespace_import":
                    alias = first_named(child)
                    if alias is not None:
                        name = self.text_of(alias)
                        bindings.append(ImportBinding(name, "*", specifier, "namespace"))
                elif child.type == "named_imports":
                    for spec in named_children(child):
                        if spec.type != "import_specifier":
                            continue
                        name_node = spec.child_by_field_name("name")
                        alias_node = spec.child_by_field_name("alias")
                        imported = self.text_of(name_node)
                        local = self.text_of(alias_node) if alias_node else imported
                        bindings.append(ImportBinding(local, imported, specifier, "named"))
        return bindings

    # Declarations --------------------------------------------------------

    def classes(self) -> list[ClassDecl]:
        if self._classes is None:
            self._classes = [
                self._build_class(node) for node in walk(self.root) if node.type in CLASS_NODE_TYPES
            ]
        return self._classes

    def find_class(self, name: str) -> ClassDecl | None:
        return next((c for c in self.classes() if c.name == name), None)

    @property
    def type_declarations(self) -> dict[str, Node]:
        if self._type_declarations is None:
            declarations = {}
            for node in walk(self.root):
                if node.type in TYPE_DECLARATION_NODE_TYPES:
                    name = node.child_by_field_name("name")
                    if name is not None:
                        declarations.setdefault(self.text_of(name), node)
            self._type_declarations = declarations
        return self._type_declarations

    def calls(self) -> list[Node]:
        """Every call expression, in source order."""
        return [node for node in walk(self.root) if node.type == "call_expression"]

    def find_function(self, name: str) -> Node | None:
        for node in walk(self.root):
            if node.type == "function_declaration":
                name_node = node.child_by_field_name("name")
                if name_node is not None and self.text_of(name_node) == name:
                    return node
        return None

    def string_constant(self, name: str) -> str | None:
        """Value of a top-level ``const NAME = '...'`` declaration."""
        declarator = self._scope_declarator(self.root, name, None)
        if declarator is None:
            return None
        value = declarator.child_by_field_name("value")
        if value is not None and value.type == "string":
            return unquote(self.text_of(value))
        return None

    def number_constant(self, name: str) -> int | None:
        """Value of a top-level ``const NAME = 204`` declaration."""
        declarator = self._scope_declarator(self.root, name, None)
        if declarator is None:
            return None
        value = declarator.child_by_field_name("value")
        if value is not None and value.type == "number":
            try:
                return int(self.text_of(value), 0)
            except ValueError:
                return None
        return None

    def find_binding(self, node: Node, name: str) -> Node | None:
        """Nearest declaration of ``name`` visible from ``node``.

        Returns a variable_declarator, a parameter node, or an arrow
        function's bare identifier parameter.
        """
        current = node.parent
        while current is not None:
            if current.type in FUNCTION_NODE_TYPES:
                param = self._function_parameter(current, name)
                if param is not None:
                    return param
            if current.type in SCOPE_NODE_TYPES:
                declarator = self._scope_declarator(current, name, node.start_byte)
                if declarator is not None:
                    return declarator
            current = current.parent
        return None

    def _function_parameter(self, function: Node, name: str) -> Node | None:
        single = function.child_by_field_name("parameter")
        if single is not None:
            return single if self.text_of(single) == name else None
        params = function.child_by_field_name("parameters")
        for param in named_children(params):
            pattern = param.child_by_field_name("pattern")
            if pattern is not None and pattern.type == "identifier" and self.text_of(pattern) == name:
                return param
        return None

    def _scope_declarator(self, scope: Node, name: str, before: int | None) -> Node | None:
        found = None
        for statement in named_children(scope):
            if statement.type == "export_statement":
                statement = statement.child_by_field_name("declaration") or statement
            if statement.type not in ("lexical_declaration", "variable_declaration"):
                continue
            for declarator in named_children(statement):
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is None or name_node.type != "identifier" or self.text_of(name_node) != name:
                    continue
                if before is None or declarator.start_byte < before or found is None:
                    found = declarator
        return found

    def _build_class(self, node: Node) -> ClassDecl:
        name_node = node.child_by_field_name("name")
        decorator_nodes = [c for c in node.children if c.type == "decorator"]
        if node.parent is not None and node.parent.type == "export_statement":
            decorator_nodes = [c for c in node.parent.children if c.type == "decorator"] + decorator_nodes

        extends_node = None
        heritage = next((c for c in node.children if c.type == "class_heritage"), None)
        if heritage is not None:
            clause = next((c for c in heritage.named_children if c.type == "extends_clause"), None)
            if clause is not None:
                extends_node = clause.child_by_field_name("value") or first_named(clause)

        return ClassDecl(
            name=self.text_of(name_node) if name_node else "",
            node=node,
            file=self,
            decorators=[decorator_from_node(d, self.text_of) for d in decorator_nodes],
            methods=self._build_methods(node.child_by_field_name("body")),
            extends_node=extends_node,
            line=line_of(node),
        )

    def _build_methods(self, body: Node | None) -> list[MethodDecl]:
        methods = []
        if body is None:
            return methods
        pending: list[Node] = []
        for member in body.children:
            if member.type == "decorator":
                pending.append(member)
                continue
            if member.type in ("comment", ";"):
                continue
            if member.type == "method_definition":
                own = [c for c in member.children if c.type == "decorator"]
                methods.append(self._build_method(member, pending + own))
            pending = []
        return methods

    def _build_method(self, node: Node, decorator_nodes: list[Node]) -> MethodDecl:
        name_node = node.child_by_field_name("name")
        return_type = node.child_by_field_name("return_type")
        return MethodDecl(
            name=self.text_of(name_node) if name_node else "",
            node=node,
            decorators=[decorator_from_node(d, self.text_of) for d in decorator_nodes],
            parameters=self._build_parameters(node.child_by_field_name("parameters")),
            return_type_node=return_type,
            line=line_of(node),
        )

    def _build_parameters(self, params: Node | None) -> list[ParameterDecl]:
        result = []
        for param in named_children(params):
            if param.type not in ("required_parameter", "optional_parameter"):
                continue
            pattern = param.child_by_field_name("pattern")
            result.append(
                ParameterDecl(
                    name=self.text_of(pattern) if pattern else "",
                    node=param,
                    decorators=[
                        decorator_from_node(d, self.text_of) for d in param.children if d.type == "decorator"
                    ],
                    type_node=param.child_by_field_name("type"),
                    optional=param.type == "optional_parameter" or param.child_by_field_name("value") is not None,
                )
            )
        return result


class Project:
    """All source files known to one extraction run."""

    def __init__(self, root: Path | None = None):
        self.root = Path(root).resolve() if root else None
        self._files: dict[Path, SourceFile] = {}
        self._class_index: dict[str, list[ClassDecl]] | None = None
        self._type_index: dict[str, list[tuple[SourceFile, Node]]] | None = None
        self.skipped: list[Path] = []

    @property
    def files(self) -> list[SourceFile]:
        return [self._files[path] for path in sorted(self._files)]

    def _register(self, key: Path, source_file: SourceFile) -> SourceFile:
        self._files[key] = source_file
        self._class_index = None
        self._type_index = None
        return source_file

    def add_directory(self, directory: Path) -> list[SourceFile]:
        """Parse every .ts/.tsx file below ``directory`` (declaration files and build output excluded).

        Unreadable files are logged and remembered in ``skipped``.
        """
        added = []
        for path in sorted(Path(directory).rglob("*")):
            if path.suffix not in SOURCE_SUFFIXES or path.name.endswith(".d.ts"):
                continue
            if IGNORED_DIRS.intersection(path.relative_to(directory).parts):
                continue
            if not path.is_file():
                continue
            try:
                added.append(self.add_source_file(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable source file %s: %s", path, e)
                self.skipped.append(path)
        logger.debug("Parsed %d source files under %s", len(added), directory)
        return added

    def add_source_file(self, path: Path) -> SourceFile:
        key = Path(path).resolve()
        if key in self._files:
            return self._files[key]
        text = key.read_text(encoding="utf-8")
        return self._register(key, SourceFile(key, text, self))

    def create_source_file(self, path: Path, text: str) -> SourceFile:
        """Register in-memory source, replacing any file already known at ``path``."""
        key = Path(path).resolve()
        return self._register(key, SourceFile(key, text, self))

    def get_source_file(self, path: Path) -> SourceFile | None:
        """Known file at ``path``, parsing it from disk on first use. None if it does not exist."""
        key = Path(path).resolve()
        if key in self._files:
            return self._files[key]
        if not key.is_file():
            return None
        return self.add_source_file(key)

    def resolve_module(self, from_path: Path, specifier: str) -> Path | None:
        """Resolve a relative import specifier to a source file path."""
        if not specifier.startswith("."):
            return None
        base = (Path(from_path).resolve().parent / specifier).resolve()
        for suffix in MODULE_SUFFIXES:
            candidate = Path(str(base) + suffix)
            if candidate.suffix not in SOURCE_SUFFIXES:
                continue
            if candidate in self._files or candidate.is_file():
                return candidate
        return None

    def find_classes(self, name: str) -> list[ClassDecl]:
        """Classes named ``name`` across the project, ordered by file path."""
        if self._class_index is None:
            index: dict[str, list[ClassDecl]] = {}
            for source_file in self.files:
                for decl in source_file.classes():
                    index.setdefault(decl.name, []).append(decl)
            self._class_index = index
        return list(self._class_index.get(name, []))

    def find_type_declarations(self, name: str) -> list[tuple[SourceFile, Node]]:
        if self._type_index is None:
            index: dict[str, list[tuple[SourceFile, Node]]] = {}
            for source_file in self.files:
                for decl_name, node in source_file.type_declarations.items():
                    index.setdefault(decl_name, []).append((source_file, node))
            self._type_index = index
        return list(self._type_index.get(name, []))
