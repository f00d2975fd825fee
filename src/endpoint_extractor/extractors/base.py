"""Unified data models for extracted endpoints.

Both framework extractors (Fastify, NestJS) convert what they find
into these models; the report generator only ever sees these.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict

from endpoint_extractor.config.models import ExtractorConfig

AuthRequired = bool | Literal["unknown"]
Confidence = Literal["high", "medium", "low"]
GuardReason = Literal["config", "pattern", "inheritance", "excluded", "unknown"]
ResponseSource = Literal["return", "reply.send", "reply.code", "declared"]


class ParamInfo(BaseModel):
    """A single named field of a path, query or body parameter group."""

    name: str
    type: str  # string / number / 'literal' / T[] / A | B / { a: T; }
    required: bool


class DetectedGuard(BaseModel):
    name: str
    level: Literal["global", "class", "method"]
    is_auth_guard: bool
    reason: GuardReason


class AuthGuardResult(BaseModel):
    is_auth: bool
    confidence: Confidence
    reason: GuardReason


class EndpointAuth(BaseModel):
    """Result of guard-convention auth detection for one endpoint."""

    required: AuthRequired
    confidence: Confidence
    guards: list[DetectedGuard] = []


class AuthInfo(BaseModel):
    """Auth requirement as reported for an endpoint.

    Hook-convention detection fills ``middlewares``/``hook_point``;
    guard-convention detection fills ``confidence``/``guards``.
    """

    required: AuthRequired
    middlewares: list[str] = []
    hook_point: str | None = None
    confidence: Confidence | None = None
    guards: list[DetectedGuard] = []


class ResponseInfo(BaseModel):
    code: int
    data_type: list[ParamInfo] = []
    type_name: str | None = None
    source: ResponseSource
    line_number: int


class ErrorResponseInfo(BaseModel):
    code: int
    message: str
    data_type: list[ParamInfo] = []
    line_number: int


class EndpointResponses(BaseModel):
    success: list[ResponseInfo] = []
    errors: list[ErrorResponseInfo] = []


class Endpoint(BaseModel):
    """A single HTTP method + path with everything known about it."""

    model_config = ConfigDict(frozen=True)

    path: str  # /users/:id
    method: str  # GET / POST / PUT / DELETE / PATCH / HEAD / OPTIONS / ALL
    path_params: list[ParamInfo] = []
    query_params: list[ParamInfo] = []
    body_params: list[ParamInfo] = []
    auth: AuthInfo
    source_file: str
    line_number: int
    responses: EndpointResponses | None = None


class PrefixedEndpoints(BaseModel):
    prefix: str
    endpoints: list[Endpoint]


class ExtractedEndpoints(BaseModel):
    framework: str
    project_root: str
    extracted_at: str
    routes: list[PrefixedEndpoints]
    auth_required_count: int
    public_count: int
    unknown_count: int = 0
    skipped_files: list[str] = []

    @classmethod
    def collect(
        cls,
        framework: str,
        project_root: Path,
        routes: list[PrefixedEndpoints],
        skipped_files: list[str] | None = None,
    ) -> "ExtractedEndpoints":
        """Build a result from grouped routes, computing the auth counters."""
        endpoints = [endpoint for group in routes for endpoint in group.endpoints]
        return cls(
            framework=framework,
            project_root=str(project_root),
            extracted_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            routes=routes,
            auth_required_count=sum(1 for e in endpoints if e.auth.required is True),
            public_count=sum(1 for e in endpoints if e.auth.required is False),
            unknown_count=sum(1 for e in endpoints if e.auth.required == "unknown"),
            skipped_files=skipped_files or [],
        )

    @property
    def endpoints(self) -> list[Endpoint]:
        return [endpoint for group in self.routes for endpoint in group.endpoints]


class FrameworkDetection(BaseModel):
    framework: str  # nestjs / fastify / express
    confidence: float
    reason: str


class EndpointExtractor:
    """Interface every framework extractor implements."""

    framework: str = ""

    def can_handle(self, project_root: Path) -> bool:
        raise NotImplementedError

    def extract(
        self,
        project_root: Path,
        config: ExtractorConfig | None = None,
        entry_file: str | None = None,
    ) -> ExtractedEndpoints:
        raise NotImplementedError
