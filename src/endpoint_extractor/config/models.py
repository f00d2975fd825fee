"""Typed extractor configuration.

Config files use camelCase keys (``guardPatterns``); the models expose
snake_case attributes and accept either spelling. Every model is frozen:
once a run has merged its sources the configuration is read-only.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from endpoint_extractor.config.defaults import (
    DEFAULT_EXCLUDE_GUARDS,
    DEFAULT_GUARD_PATTERNS,
    DEFAULT_HOOK_POINTS,
    DEFAULT_MIDDLEWARE_NAMES,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_PUBLIC_DECORATORS,
    DEFAULT_PUBLIC_METADATA_KEYS,
    DEFAULT_RESPONSE_DEPTH,
    FASTIFY_ENTRY_FILE,
    NESTJS_ENTRY_FILE,
)


class ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class CommonConfig(ConfigModel):
    output_format: Literal["yaml", "json"] = DEFAULT_OUTPUT_FORMAT
    extract_responses: bool = False
    response_depth: int = DEFAULT_RESPONSE_DEPTH


class GuardAuthConfig(ConfigModel):
    """Guard-convention auth settings (``nestjs.auth``)."""

    guard_patterns: list[str] = DEFAULT_GUARD_PATTERNS
    auth_guards: list[str] = []
    exclude_guards: list[str] = DEFAULT_EXCLUDE_GUARDS
    public_decorators: list[str] = DEFAULT_PUBLIC_DECORATORS
    public_metadata_keys: list[str] = DEFAULT_PUBLIC_METADATA_KEYS


class CustomParamDecorator(ConfigModel):
    name: str
    type: str = "custom"
    description: str | None = None


class NestParamsConfig(ConfigModel):
    custom_decorators: list[CustomParamDecorator] = []


class NestConfig(ConfigModel):
    auth: GuardAuthConfig = GuardAuthConfig()
    params: NestParamsConfig = NestParamsConfig()
    entry_file: str = NESTJS_ENTRY_FILE


class HookAuthConfig(ConfigModel):
    """Hook-convention auth settings (``fastify.auth``)."""

    middleware_names: list[str] = DEFAULT_MIDDLEWARE_NAMES
    hook_points: list[str] = DEFAULT_HOOK_POINTS


class FastifyConfig(ConfigModel):
    auth: HookAuthConfig = HookAuthConfig()
    entry_file: str = FASTIFY_ENTRY_FILE


class ExtractorConfig(ConfigModel):
    common: CommonConfig = CommonConfig()
    nestjs: NestConfig = NestConfig()
    fastify: FastifyConfig = FastifyConfig()
