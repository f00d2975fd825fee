from pathlib import Path

from endpoint_extractor.frontend.nodes import walk
from endpoint_extractor.frontend.project import Project
from endpoint_extractor.frontend.types import TypeChecker

SOURCE = """
interface Item {
  sku: string;
  qty: number;
}

function loadItem(): Item {
  return { sku: 'a', qty: 1 };
}

const base = { id: 1, label: 'x' };
const extended = { ...base, label: true, extra: null };
const item = loadItem();
const items: Item[] = [];
const status = 'ready' as const;
const pick = Math.random() > 0.5 ? 'a' : 1;
const count = items.length;
const name = item.sku;
const loop = loop;
const merged = `${base.label}` + 1;
"""


def _checker():
    project = Project()
    source_file = project.create_source_file(Path("/virtual/expr.ts"), SOURCE)
    return TypeChecker(project), source_file


def _initializer(source_file, name):
    for node in walk(source_file.root):
        if node.type != "variable_declarator":
            continue
        if source_file.text_of(node.child_by_field_name("name")) == name:
            return node.child_by_field_name("value")
    raise AssertionError(f"no declarator {name}")


def _members(handle):
    return {m.name: m.type.name for m in handle.properties()}


class TestTypeOfExpression:
    def test_object_literal(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "base"), source_file)
        assert handle.is_object
        assert _members(handle) == {"id": "number", "label": "string"}

    def test_spread_then_override(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "extended"), source_file)
        assert _members(handle) == {"id": "number", "label": "boolean", "extra": "null"}

    def test_call_uses_declared_return_type(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "item"), source_file)
        assert handle.name == "Item"
        assert _members(handle) == {"sku": "string", "qty": "number"}

    def test_annotated_identifier(self):
        checker, source_file = _checker()
        node = _initializer(source_file, "count").child_by_field_name("object")
        handle = checker.type_of_expression(node, source_file)
        assert handle.is_array
        assert handle.element_type().name == "Item"

    def test_array_length_is_number(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "count"), source_file)
        assert handle.name == "number"

    def test_member_of_object(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "name"), source_file)
        assert handle.name == "string"

    def test_as_const_keeps_expression_type(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "status"), source_file)
        assert handle.name == "string"

    def test_ternary_is_union(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "pick"), source_file)
        assert handle.is_union
        assert [o.name for o in handle.union_types()] == ["string", "number"]

    def test_self_reference_is_unknown(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "loop"), source_file)
        assert handle.kind == "unknown"

    def test_string_concatenation(self):
        checker, source_file = _checker()
        handle = checker.type_of_expression(_initializer(source_file, "merged"), source_file)
        assert handle.name == "string"


class TestTypeAnnotations:
    def test_cross_file_import(self, tmp_path):
        (tmp_path / "models.ts").write_text("export interface Account { email: string; }\n")
        route = tmp_path / "route.ts"
        route.write_text("import { Account } from './models';\nlet a: Account;\n")

        project = Project(tmp_path)
        source_file = project.add_source_file(route)
        handle = TypeChecker(project).resolve_type_name("Account", source_file)
        assert handle.is_object
        assert handle.module_path == str((tmp_path / "models.ts").resolve())
        assert _members(handle) == {"email": "string"}

    def test_external_import_is_reference(self):
        project = Project()
        source_file = project.create_source_file(
            Path("/virtual/ext.ts"),
            "import { Request } from 'express';\n",
        )
        handle = TypeChecker(project).resolve_type_name("Request", source_file)
        assert handle.kind == "reference"
        assert handle.module_path == "express"

    def test_class_members_skip_static(self):
        project = Project()
        source_file = project.create_source_file(
            Path("/virtual/dto.ts"),
            "class Dto { name: string; age?: number; static version = 1; active = true; }\n",
        )
        handle = TypeChecker(project).resolve_type_name("Dto", source_file)
        members = {m.name: (m.type.name, m.optional) for m in handle.properties()}
        assert members == {
            "name": ("string", False),
            "age": ("number", True),
            "active": ("boolean", False),
        }
