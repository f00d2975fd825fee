"""Look up the extractor for a framework name."""

from pathlib import Path

from endpoint_extractor.errors import UnsupportedFrameworkError
from endpoint_extractor.extractors.base import EndpointExtractor
from endpoint_extractor.extractors.detect import detect_framework
from endpoint_extractor.extractors.fastify.extractor import FastifyExtractor
from endpoint_extractor.extractors.nestjs.extractor import NestExtractor

EXTRACTORS: dict[str, type[EndpointExtractor]] = {
    "fastify": FastifyExtractor,
    "nestjs": NestExtractor,
}


def supported_frameworks() -> list[str]:
    return list(EXTRACTORS)


def get_extractor(framework: str) -> EndpointExtractor:
    extractor_class = EXTRACTORS.get(framework)
    if extractor_class is None:
        raise UnsupportedFrameworkError(
            f"Unsupported framework: {framework}. Supported: {', '.join(supported_frameworks())}"
        )
    return extractor_class()


def get_extractor_for_project(project_root: Path) -> EndpointExtractor:
    """Detect the framework of ``project_root`` and return its extractor."""
    detection = detect_framework(project_root)
    if detection is None:
        raise UnsupportedFrameworkError(
            f"Could not detect framework in {project_root}. "
            f"Supported frameworks: {', '.join(supported_frameworks())}"
        )
    return get_extractor(detection.framework)
