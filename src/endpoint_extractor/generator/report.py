"""Render ExtractedEndpoints as a YAML or JSON report."""

import json

import yaml

from endpoint_extractor.extractors.base import Endpoint, ExtractedEndpoints, ParamInfo
from endpoint_extractor.utils.logger import get_logger

logger = get_logger(__name__)


class ReportGenerator:
    """Builds the report document: a ``_meta`` block, then one block per route prefix."""

    def __init__(self, fmt: str = "yaml"):
        if fmt not in ("yaml", "json"):
            raise ValueError(f"Unsupported report format: {fmt}")
        self.fmt = fmt

    def generate(self, result: ExtractedEndpoints) -> str:
        document = self.build(result)
        if self.fmt == "json":
            return json.dumps(document, indent=2, ensure_ascii=False)
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)

    def build(self, result: ExtractedEndpoints) -> dict:
        document: dict = {"_meta": self._meta(result)}
        for group in result.routes:
            endpoints = document.setdefault(group.prefix, {"endpoints": {}})["endpoints"]
            for endpoint in group.endpoints:
                endpoints[self._key(endpoints, endpoint)] = self._endpoint(endpoint)
        return document

    @staticmethod
    def _key(endpoints: dict, endpoint: Endpoint) -> str:
        """Report key for ``endpoint``: its path, then ``"METHOD path"``, then a numbered variant."""
        key = endpoint.path
        if key not in endpoints:
            return key
        key = base = f"{endpoint.method} {endpoint.path}"
        counter = 2
        while key in endpoints:
            key = f"{base} ({counter})"
            counter += 1
        if key != base:
            logger.warning(
                "Duplicate endpoint %s in %s:%d reported as '%s'",
                base,
                endpoint.source_file,
                endpoint.line_number,
                key,
            )
        return key

    @staticmethod
    def _meta(result: ExtractedEndpoints) -> dict:
        meta = {
            "framework": result.framework,
            "projectRoot": result.project_root,
            "extractedAt": result.extracted_at,
            "totalEndpoints": len(result.endpoints),
            "authRequiredCount": result.auth_required_count,
            "publicCount": result.public_count,
            "unknownCount": result.unknown_count,
        }
        if result.skipped_files:
            meta["skippedFiles"] = list(result.skipped_files)
        return meta

    def _endpoint(self, endpoint: Endpoint) -> dict:
        entry: dict = {"METHOD": endpoint.method}
        for key, params in (
            ("pathParams", endpoint.path_params),
            ("queryParams", endpoint.query_params),
            ("bodyParams", endpoint.body_params),
        ):
            if params:
                entry[key] = self._params(params)

        auth = endpoint.auth
        entry["requiresAuth"] = auth.required
        if auth.confidence is not None:
            entry["authConfidence"] = auth.confidence
        if auth.middlewares:
            entry["authMiddlewares"] = list(auth.middlewares)

        responses = self._responses(endpoint)
        if responses:
            entry["responses"] = responses
        return entry

    @staticmethod
    def _params(params: list[ParamInfo]) -> dict:
        return {p.name: p.type if p.required else f"{p.type} | undefined" for p in params}

    def _responses(self, endpoint: Endpoint) -> dict | None:
        if endpoint.responses is None:
            return None
        rendered: dict = {}
        if endpoint.responses.success:
            first = endpoint.responses.success[0]
            rendered["success"] = {"code": first.code, "dataType": self._params(first.data_type)}
        if endpoint.responses.errors:
            rendered["errors"] = [{"code": e.code, "message": e.message} for e in endpoint.responses.errors]
        return rendered or None
