"""Fastify extractor: entry file -> registered route plugins -> endpoints."""

from pathlib import Path

from endpoint_extractor.config.loader import ConfigLoader
from endpoint_extractor.config.models import ExtractorConfig
from endpoint_extractor.errors import EntryNotFoundError, ExtractorError
from endpoint_extractor.extractors.base import EndpointExtractor, ExtractedEndpoints, PrefixedEndpoints
from endpoint_extractor.extractors.detect import read_dependencies
from endpoint_extractor.extractors.fastify.plugins import PluginRegistrationParser
from endpoint_extractor.extractors.fastify.routes import RouteFileParser
from endpoint_extractor.frontend.project import Project
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)


class FastifyExtractor(EndpointExtractor):
    framework = "fastify"

    def can_handle(self, project_root: Path) -> bool:
        deps = read_dependencies(project_root)
        return deps is not None and "fastify" in deps

    def extract(
        self,
        project_root: Path,
        config: ExtractorConfig | None = None,
        entry_file: str | None = None,
    ) -> ExtractedEndpoints:
        project_root = Path(project_root).resolve()
        config = config or ConfigLoader().load(project_root)
        entry_path = project_root / (entry_file or config.fastify.entry_file)
        if not entry_path.is_file():
            raise EntryNotFoundError(entry_path)

        logger.info("Parsing Fastify entry file %s", entry_path)
        project = Project(project_root)
        registrations = PluginRegistrationParser(project).parse(entry_path)
        logger.info("Found %d route registrations", len(registrations))

        route_parser = RouteFileParser(
            project,
            auth_config=config.fastify.auth,
            extract_responses=config.common.extract_responses,
            response_depth=config.common.response_depth,
        )

        routes = []
        skipped = [str(path) for path in project.skipped]
        for registration in registrations:
            logger.debug("Parsing route file %s", registration.resolved_path)
            try:
                endpoints = route_parser.parse(registration.resolved_path)
            except (OSError, UnicodeDecodeError, ExtractorError) as e:
                logger.warning("Skipping route file %s: %s", registration.resolved_path, e)
                skipped.append(str(registration.resolved_path))
                continue
            routes.append(PrefixedEndpoints(prefix=registration.prefix, endpoints=endpoints))

        return ExtractedEndpoints.collect(self.framework, project_root, routes, skipped)
