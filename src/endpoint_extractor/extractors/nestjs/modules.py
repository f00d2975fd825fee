"""Walk the ``@Module`` graph from the entry module to every registered controller."""

from dataclasses import dataclass, field
from pathlib import Path

from endpoint_extractor.frontend.project import Project, SourceFile
from endpoint_extractor.frontend.values import CallValue, Expression, Reference
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)

APP_GUARD = "APP_GUARD"
FORWARD_REF = "forwardRef"


@dataclass(frozen=True)
class ControllerRegistration:
    name: str
    import_path: str
    resolved_path: Path | None


@dataclass(frozen=True)
class ModuleRegistration:
    name: str
    import_path: str
    resolved_path: Path | None


@dataclass
class ModuleInfo:
    name: str
    source_file: Path
    controllers: list[ControllerRegistration] = field(default_factory=list)
    imported_modules: list[ModuleRegistration] = field(default_factory=list)
    global_guards: list[str] = field(default_factory=list)


class ModuleParser:
    def __init__(self, project: Project):
        self.project = project

    def parse_module(self, source_file: SourceFile) -> ModuleInfo:
        """Read the first ``@Module({...})`` class of ``source_file``."""
        for decl in source_file.classes():
            decorator = decl.get_decorator("Module")
            if decorator is None or not decorator.arguments or not isinstance(decorator.arguments[0], dict):
                continue
            options = decorator.arguments[0]
            return ModuleInfo(
                name=decl.name or "AppModule",
                source_file=source_file.path,
                controllers=[
                    ControllerRegistration(name, *self._resolve(source_file, name))
                    for name in self._identifiers(options.get("controllers"))
                ],
                imported_modules=[
                    ModuleRegistration(name, *self._resolve(source_file, name))
                    for name in self._module_names(options.get("imports"))
                ],
                global_guards=self._global_guards(options.get("providers")),
            )
        return ModuleInfo(name="Unknown", source_file=source_file.path)

    def parse_source(self, text: str, path: Path) -> ModuleInfo:
        return self.parse_module(self.project.create_source_file(path, text))

    def _resolve(self, source_file: SourceFile, name: str) -> tuple[str, Path | None]:
        """(import specifier, resolved file) for an identifier used in a module."""
        binding = source_file.import_map.get(name)
        if binding is None:
            if source_file.find_class(name) is not None:
                return "", source_file.path
            return "", None
        if not binding.is_relative:
            return binding.specifier, None
        resolved = self.project.resolve_module(source_file.path, binding.specifier)
        if resolved is None:
            missing = (source_file.path.parent / binding.specifier).resolve()
            resolved = missing if missing.suffix == ".ts" else Path(f"{missing}.ts")
        return binding.specifier, resolved

    @staticmethod
    def _identifiers(value) -> list[str]:
        if not isinstance(value, list):
            return []
        return [v.name for v in value if isinstance(v, Reference) and "." not in v.name]

    @staticmethod
    def _module_names(value) -> list[str]:
        """Module identifiers in ``imports``: ``X``, ``X.forRoot(...)`` and ``forwardRef(() => X)``."""
        if not isinstance(value, list):
            return []
        names = []
        for item in value:
            if isinstance(item, Reference) and "." not in item.name:
                names.append(item.name)
            elif isinstance(item, CallValue) and item.callee == FORWARD_REF and item.arguments:
                target = item.arguments[0]
                if isinstance(target, Expression) and "=>" in target.text:
                    names.append(target.text.split("=>", 1)[1].strip().strip("()").strip())
            elif isinstance(item, CallValue) and "." in item.callee:
                names.append(item.callee.split(".", 1)[0])
        return [name for name in names if name.isidentifier()]

    @staticmethod
    def _global_guards(value) -> list[str]:
        if not isinstance(value, list):
            return []
        guards = []
        for provider in value:
            if not isinstance(provider, dict):
                continue
            provide = provider.get("provide")
            use_class = provider.get("useClass")
            if isinstance(provide, Reference) and provide.name == APP_GUARD and isinstance(use_class, Reference):
                guards.append(use_class.name)
        return guards


class NestModuleWalker:
    """Collects controller registrations from every module reachable from the entry module."""

    def __init__(self, project: Project, parser: ModuleParser | None = None):
        self.project = project
        self.parser = parser or ModuleParser(project)
        self.skipped: list[Path] = []

    def collect_controllers(self, entry: ModuleInfo) -> list[ControllerRegistration]:
        visited = {entry.source_file}
        controllers = self._walk(entry, visited)

        unique = []
        seen = set()
        for registration in controllers:
            key = (registration.resolved_path, registration.name)
            if key in seen:
                continue
            seen.add(key)
            unique.append(registration)
        return unique

    def _walk(self, module: ModuleInfo, visited: set[Path]) -> list[ControllerRegistration]:
        controllers = list(module.controllers)
        for imported in module.imported_modules:
            if imported.resolved_path is None:
                logger.debug("Not following non-project module %s (%s)", imported.name, imported.import_path)
                continue
            if imported.resolved_path in visited:
                continue
            visited.add(imported.resolved_path)

            try:
                source_file = self.project.get_source_file(imported.resolved_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Cannot read module %s: %s", imported.resolved_path, e)
                self.skipped.append(imported.resolved_path)
                continue
            if source_file is None:
                logger.warning("Module file not found: %s", imported.resolved_path)
                self.skipped.append(imported.resolved_path)
                continue
            controllers.extend(self._walk(self.parser.parse_module(source_file), visited))
        return controllers
