import json
from pathlib import Path

import yaml
from click.testing import CliRunner

from endpoint_extractor.cli import _build_overrides, main

FIXTURES = Path(__file__).parent / "fixtures"


class TestBuildOverrides:
    def test_no_flags(self):
        assert _build_overrides(None, False, None) == {}

    def test_all_flags(self):
        assert _build_overrides("json", True, "checkSession, verifyKey,") == {
            "common": {"outputFormat": "json", "extractResponses": True},
            "fastify": {"auth": {"middlewareNames": ["checkSession", "verifyKey"]}},
        }


class TestCliExtract:
    def test_extract_fastify_to_file(self, tmp_path):
        output_file = tmp_path / "out" / "report.yaml"
        runner = CliRunner()
        result = runner.invoke(main, ["extract", str(FIXTURES / "fastify_app"), "-o", str(output_file)])

        assert result.exit_code == 0, result.output
        assert "Report saved to" in result.output
        assert "Found 5 endpoints" in result.output
        document = yaml.safe_load(output_file.read_text())
        assert document["_meta"]["framework"] == "fastify"
        assert set(document["/users"]["endpoints"]) == {"/", "/:id", "POST /", "DELETE /:id"}

    def test_extract_nestjs_json_with_responses(self, tmp_path):
        output_file = tmp_path / "report.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "extract", str(FIXTURES / "nest_app"),
            "--format", "json",
            "--responses",
            "-o", str(output_file),
        ])

        assert result.exit_code == 0, result.output
        document = json.loads(output_file.read_text())
        assert document["_meta"]["framework"] == "nestjs"
        assert document["_meta"]["totalEndpoints"] == 8
        users = document["/users"]["endpoints"]
        assert users["POST /users"]["responses"]["success"]["code"] == 201
        assert users["/users/:id"]["authConfidence"] == "high"

    def test_auth_middlewares_flag(self, tmp_path):
        output_file = tmp_path / "report.json"
        runner = CliRunner()
        result = runner.invoke(main, [
            "extract", str(FIXTURES / "fastify_app"),
            "--format", "json",
            "--auth-middlewares", "rateLimit",
            "-o", str(output_file),
        ])

        assert result.exit_code == 0, result.output
        endpoints = json.loads(output_file.read_text())["/users"]["endpoints"]
        assert endpoints["DELETE /:id"]["authMiddlewares"] == ["rateLimit"]
        assert endpoints["/:id"]["requiresAuth"] is False

    def test_unsupported_framework(self):
        runner = CliRunner()
        result = runner.invoke(main, ["extract", str(FIXTURES / "fastify_app"), "--framework", "express"])
        assert result.exit_code != 0
        assert "Unsupported framework: express" in result.output

    def test_missing_entry(self, tmp_path):
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"fastify": "^4"}}))
        runner = CliRunner()
        result = runner.invoke(main, ["extract", str(tmp_path)])
        assert result.exit_code != 0
        assert "Entry file not found" in result.output

    def test_invalid_config(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("common: [oops\n")
        runner = CliRunner()
        result = runner.invoke(main, ["extract", str(FIXTURES / "fastify_app"), "--config", str(config_file)])
        assert result.exit_code != 0
        assert "Malformed config file" in result.output


class TestCliDetect:
    def test_detect_fastify(self):
        runner = CliRunner()
        result = runner.invoke(main, ["detect", str(FIXTURES / "fastify_app")])
        assert result.exit_code == 0
        assert "fastify (confidence: 1.00)" in result.output
        assert "Found dependencies: fastify" in result.output

    def test_detect_nothing(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["detect", str(tmp_path)])
        assert result.exit_code != 0
        assert "Could not detect" in result.output
