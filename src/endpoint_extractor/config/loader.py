"""Layered configuration loading.

Sources, highest precedence first:

1. an explicitly supplied file
2. ``extractor.config.yaml`` in the project root
3. ``extractor.config.json`` in the project root
4. the ``extractorConfig`` field of ``package.json``
5. built-in defaults

Keys may be written in camelCase or snake_case; every source is normalised to
camelCase before merging. Present sources are folded from the right: mappings
merge recursively, anything else (lists and explicit nulls included) is
replaced by the higher-precedence value.
"""

import json
from functools import reduce
from pathlib import Path

import yaml
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from endpoint_extractor.config.defaults import (
    JSON_CONFIG_FILE,
    PACKAGE_JSON_CONFIG_KEY,
    YAML_CONFIG_FILE,
)
from endpoint_extractor.config.models import ExtractorConfig
from endpoint_extractor.errors import ConfigError
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)


def deep_merge(base: dict, override: dict) -> dict:
    """Merge ``override`` onto ``base``; nested mappings merge, everything else is replaced."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def camel_keys(value):
    """Rewrite snake_case mapping keys to their camelCase alias, recursively."""
    if isinstance(value, dict):
        return {
            (to_camel(key) if isinstance(key, str) and "_" in key else key): camel_keys(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [camel_keys(item) for item in value]
    return value


class ConfigLoader:
    """Collects configuration sources for a project and merges them."""

    def load(
        self,
        project_root: Path,
        config_path: Path | None = None,
        overrides: dict | None = None,
    ) -> ExtractorConfig:
        """Load the effective configuration for ``project_root``.

        ``overrides`` (e.g. from CLI flags) outrank every file source.
        """
        project_root = Path(project_root)
        sources = [
            overrides,
            self._load_file(Path(config_path)) if config_path else None,
            self._load_file(project_root / YAML_CONFIG_FILE),
            self._load_file(project_root / JSON_CONFIG_FILE),
            self._load_from_package_json(project_root),
            ExtractorConfig().model_dump(by_alias=True),
        ]
        present = [camel_keys(source) for source in sources if source is not None]

        merged = reduce(lambda acc, source: deep_merge(acc, source), reversed(present))
        try:
            return ExtractorConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid extractor configuration: {e}") from e

    def _load_file(self, file_path: Path) -> dict | None:
        if not file_path.is_file():
            logger.debug("Config source not present: %s", file_path)
            return None

        text = file_path.read_text(encoding="utf-8")
        try:
            if file_path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(text)
            else:
                data = json.loads(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Malformed config file {file_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {file_path} must contain a mapping at the top level")

        logger.debug("Loaded config source: %s", file_path)
        return data

    def _load_from_package_json(self, project_root: Path) -> dict | None:
        pkg_path = project_root / "package.json"
        if not pkg_path.is_file():
            return None

        try:
            pkg = json.loads(pkg_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Malformed package.json {pkg_path}: {e}") from e

        config = pkg.get(PACKAGE_JSON_CONFIG_KEY) if isinstance(pkg, dict) else None
        if config is None:
            return None
        if not isinstance(config, dict):
            raise ConfigError(f"'{PACKAGE_JSON_CONFIG_KEY}' in {pkg_path} must be a mapping")
        return config
