"""Auto-detect the web framework of a project from its package.json."""

import json
from pathlib import Path

from endpoint_extractor.extractors.base import FrameworkDetection
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)

# Checked in order; NestJS apps usually depend on fastify or express too.
FRAMEWORK_DEPENDENCIES = [
    ("nestjs", ["@nestjs/core", "@nestjs/common"]),
    ("fastify", ["fastify"]),
    ("express", ["express"]),
]


def read_dependencies(project_root: Path) -> dict | None:
    """Merged dependencies and devDependencies of ``project_root``/package.json.

    Returns None when the file is missing or not valid JSON.
    """
    pkg_path = Path(project_root) / "package.json"
    try:
        pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.debug("Cannot read %s: %s", pkg_path, e)
        return None
    if not isinstance(pkg, dict):
        return None
    return {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}


def detect_framework(project_root: Path) -> FrameworkDetection | None:
    """Detect the framework of a project.

    Returns: a FrameworkDetection for 'nestjs', 'fastify' or 'express', or None.
    """
    deps = read_dependencies(project_root)
    if deps is None:
        return None

    for framework, expected in FRAMEWORK_DEPENDENCIES:
        matched = [dep for dep in expected if dep in deps]
        if matched:
            return FrameworkDetection(
                framework=framework,
                confidence=len(matched) / len(expected),
                reason=f"Found dependencies: {', '.join(matched)}",
            )
    return None
