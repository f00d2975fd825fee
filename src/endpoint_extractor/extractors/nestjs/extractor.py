"""NestJS extractor: entry module -> module graph -> controllers -> endpoints."""

import re
from pathlib import Path

from endpoint_extractor.config.loader import ConfigLoader
from endpoint_extractor.config.models import ExtractorConfig
from endpoint_extractor.errors import EntryNotFoundError, ExtractorError
from endpoint_extractor.extractors.base import EndpointExtractor, ExtractedEndpoints, PrefixedEndpoints
from endpoint_extractor.extractors.detect import read_dependencies
from endpoint_extractor.extractors.nestjs.auth import NestAuthDetector
from endpoint_extractor.extractors.nestjs.controllers import ControllerParser
from endpoint_extractor.extractors.nestjs.guards import GuardAnalyzer
from endpoint_extractor.extractors.nestjs.modules import ModuleParser, NestModuleWalker
from endpoint_extractor.frontend.project import Project
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)


class NestExtractor(EndpointExtractor):
    framework = "nestjs"

    def can_handle(self, project_root: Path) -> bool:
        deps = read_dependencies(project_root)
        return deps is not None and "@nestjs/common" in deps

    def extract(
        self,
        project_root: Path,
        config: ExtractorConfig | None = None,
        entry_file: str | None = None,
    ) -> ExtractedEndpoints:
        project_root = Path(project_root).resolve()
        config = config or ConfigLoader().load(project_root)
        entry_path = project_root / (entry_file or config.nestjs.entry_file)
        if not entry_path.is_file():
            raise EntryNotFoundError(entry_path)

        # Guard inheritance and DTO lookups need every declaration in the tree.
        project = Project(project_root)
        project.add_directory(project_root)
        entry = project.get_source_file(entry_path)
        if entry is None:
            raise EntryNotFoundError(entry_path)

        module_parser = ModuleParser(project)
        entry_module = module_parser.parse_module(entry)
        walker = NestModuleWalker(project, module_parser)
        registrations = walker.collect_controllers(entry_module)
        logger.info("Found %d controllers", len(registrations))
        logger.info("Global guards: %s", ", ".join(entry_module.global_guards) or "none")

        auth_config = config.nestjs.auth
        auth_detector = NestAuthDetector(auth_config, GuardAnalyzer(project))
        controller_parser = ControllerParser(
            project,
            public_decorators=auth_config.public_decorators,
            custom_decorators=config.nestjs.params.custom_decorators,
            extract_responses=config.common.extract_responses,
            response_depth=config.common.response_depth,
        )

        routes = []
        skipped = [str(path) for path in [*project.skipped, *walker.skipped]]
        for registration in registrations:
            if registration.resolved_path is None:
                logger.debug("Controller %s is not declared in the project", registration.name)
                continue
            try:
                source_file = project.get_source_file(registration.resolved_path)
                if source_file is None:
                    raise FileNotFoundError(registration.resolved_path)
                controller = controller_parser.parse_controller(source_file, registration.name)
                if controller is None:
                    logger.debug("No @Controller %s in %s", registration.name, registration.resolved_path)
                    continue
                endpoints = controller_parser.extract_endpoints(
                    controller, entry_module.global_guards, auth_detector
                )
            except (OSError, UnicodeDecodeError, ExtractorError) as e:
                logger.warning("Skipping controller file %s: %s", registration.resolved_path, e)
                skipped.append(str(registration.resolved_path))
                continue
            prefix = re.sub(r"/+", "/", f"/{controller.base_path}")
            routes.append(PrefixedEndpoints(prefix=prefix, endpoints=endpoints))

        return ExtractedEndpoints.collect(self.framework, project_root, routes, skipped)
