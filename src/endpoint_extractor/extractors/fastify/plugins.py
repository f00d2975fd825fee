"""Walk ``register(...)`` calls from the Fastify entry file to the route files."""

from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node

from endpoint_extractor.frontend.nodes import call_arguments
from endpoint_extractor.frontend.project import Project, SourceFile
from endpoint_extractor.frontend.values import to_value
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RouteRegistration:
    """One registered route plugin and the prefix it is mounted under."""

    import_name: str
    import_path: str
    prefix: str
    resolved_path: Path


def join_prefixes(parent: str, child: str) -> str:
    joined = f"{parent.rstrip('/')}/{child.lstrip('/')}" if parent and child else parent or child
    return joined or "/"


class PluginRegistrationParser:
    """Finds route plugins registered through ``app.register(plugin, {prefix})``."""

    def __init__(self, project: Project | None = None):
        self.project = project or Project()

    def parse(self, entry_path: Path) -> list[RouteRegistration]:
        """Registrations reachable from ``entry_path``, nested registrations included."""
        source_file = self.project.get_source_file(entry_path)
        if source_file is None:
            return []
        return self._walk(source_file, "", set())

    def parse_source(self, text: str, path: Path) -> list[RouteRegistration]:
        """Direct registrations of in-memory source (no recursion into registered files)."""
        return self.registrations_in(self.project.create_source_file(path, text))

    def registrations_in(self, source_file: SourceFile) -> list[RouteRegistration]:
        imports = source_file.import_map
        registrations = []
        for call in source_file.calls():
            if not self._is_register_call(call, source_file):
                continue
            args = call_arguments(call)
            if not args or args[0].type != "identifier":
                continue

            import_name = source_file.text_of(args[0])
            binding = imports.get(import_name)
            if binding is None or not binding.is_relative:
                continue

            registrations.append(
                RouteRegistration(
                    import_name=import_name,
                    import_path=binding.specifier,
                    prefix=self._prefix(args[1:], source_file),
                    resolved_path=self._resolve(source_file.path, binding.specifier),
                )
            )
        return registrations

    def _walk(self, source_file: SourceFile, parent_prefix: str, visited: set[Path]) -> list[RouteRegistration]:
        visited.add(source_file.path)
        result = []
        for registration in self.registrations_in(source_file):
            prefix = join_prefixes(parent_prefix, registration.prefix)
            result.append(
                RouteRegistration(
                    import_name=registration.import_name,
                    import_path=registration.import_path,
                    prefix=prefix,
                    resolved_path=registration.resolved_path,
                )
            )
            if registration.resolved_path in visited:
                logger.debug("Already walked %s, not following again", registration.resolved_path)
                continue
            try:
                child = self.project.get_source_file(registration.resolved_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read registered plugin %s: %s", registration.resolved_path, e)
                continue
            if child is not None:
                result.extend(self._walk(child, prefix, visited))
        return result

    def _resolve(self, from_path: Path, specifier: str) -> Path:
        resolved = self.project.resolve_module(from_path, specifier)
        if resolved is not None:
            return resolved
        fallback = (from_path.parent / specifier).resolve()
        return fallback if fallback.suffix == ".ts" else Path(f"{fallback}.ts")

    @staticmethod
    def _is_register_call(call: Node, source_file: SourceFile) -> bool:
        callee = call.child_by_field_name("function")
        if callee is None or callee.type != "member_expression":
            return False
        prop = callee.child_by_field_name("property")
        return prop is not None and source_file.text_of(prop) == "register"

    @staticmethod
    def _prefix(option_args: list[Node], source_file: SourceFile) -> str:
        for arg in option_args:
            if arg.type != "object":
                continue
            prefix = to_value(arg, source_file.text_of).get("prefix")
            if isinstance(prefix, str):
                return prefix
        return ""
