import json

import pytest

from endpoint_extractor.config.loader import ConfigLoader, camel_keys, deep_merge
from endpoint_extractor.config.models import ExtractorConfig
from endpoint_extractor.errors import ConfigError


def _write_package_json(root, extractor_config=None):
    pkg = {"name": "app", "dependencies": {"fastify": "^4.0.0"}}
    if extractor_config is not None:
        pkg["extractorConfig"] = extractor_config
    (root / "package.json").write_text(json.dumps(pkg))


class TestDeepMerge:
    def test_nested_mappings_merge(self):
        base = {"common": {"outputFormat": "yaml", "responseDepth": 2}}
        merged = deep_merge(base, {"common": {"outputFormat": "json"}})
        assert merged == {"common": {"outputFormat": "json", "responseDepth": 2}}

    def test_lists_are_replaced(self):
        base = {"nestjs": {"auth": {"authGuards": ["A", "B"]}}}
        merged = deep_merge(base, {"nestjs": {"auth": {"authGuards": ["C"]}}})
        assert merged["nestjs"]["auth"]["authGuards"] == ["C"]

    def test_does_not_mutate_inputs(self):
        base = {"common": {"outputFormat": "yaml"}}
        deep_merge(base, {"common": {"outputFormat": "json"}})
        assert base == {"common": {"outputFormat": "yaml"}}

    def test_explicit_none_replaces_value(self):
        merged = deep_merge({"common": {"responseDepth": 2}}, {"common": {"responseDepth": None}})
        assert merged == {"common": {"responseDepth": None}}


class TestCamelKeys:
    def test_snake_case_keys_converted(self):
        assert camel_keys({"nestjs": {"entry_file": "main.ts", "auth": {"auth_guards": ["A"]}}}) == {
            "nestjs": {"entryFile": "main.ts", "auth": {"authGuards": ["A"]}}
        }

    def test_camel_case_keys_untouched(self):
        source = {"common": {"extractResponses": True, "responseDepth": 3}}
        assert camel_keys(source) == source

    def test_mappings_inside_lists_converted(self):
        source = {"customDecorators": [{"name": "CurrentUser", "type": "user"}], "public_metadata_keys": ["isPublic"]}
        assert camel_keys(source) == {
            "customDecorators": [{"name": "CurrentUser", "type": "user"}],
            "publicMetadataKeys": ["isPublic"],
        }


class TestConfigLoader:
    def test_defaults_without_sources(self, tmp_path):
        config = ConfigLoader().load(tmp_path)
        assert config == ExtractorConfig()
        assert config.common.output_format == "yaml"
        assert config.common.response_depth == 2
        assert "ThrottlerGuard" in config.nestjs.auth.exclude_guards
        assert config.fastify.auth.hook_points == ["preHandler", "onRequest"]
        assert config.nestjs.entry_file == "src/app.module.ts"
        assert config.fastify.entry_file == "src/build.ts"

    def test_package_json_source(self, tmp_path):
        _write_package_json(tmp_path, {"nestjs": {"auth": {"authGuards": ["SessionCheck"]}}})
        config = ConfigLoader().load(tmp_path)
        assert config.nestjs.auth.auth_guards == ["SessionCheck"]
        # untouched siblings keep their defaults
        assert config.nestjs.auth.public_decorators == ["Public", "SkipAuth", "AllowAnonymous"]

    def test_yaml_outranks_json_and_package_json(self, tmp_path):
        _write_package_json(tmp_path, {"common": {"responseDepth": 4, "outputFormat": "json"}})
        (tmp_path / "extractor.config.json").write_text(json.dumps({"common": {"responseDepth": 3}}))
        (tmp_path / "extractor.config.yaml").write_text("common:\n  outputFormat: yaml\n")

        config = ConfigLoader().load(tmp_path)
        assert config.common.output_format == "yaml"
        assert config.common.response_depth == 3

    def test_explicit_file_outranks_project_files(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text("common:\n  responseDepth: 3\n")
        explicit = tmp_path / "custom.yml"
        explicit.write_text("common:\n  responseDepth: 1\n")

        config = ConfigLoader().load(tmp_path, config_path=explicit)
        assert config.common.response_depth == 1

    def test_overrides_outrank_everything(self, tmp_path):
        explicit = tmp_path / "custom.json"
        explicit.write_text(json.dumps({"common": {"outputFormat": "yaml"}}))
        config = ConfigLoader().load(
            tmp_path,
            config_path=explicit,
            overrides={"common": {"outputFormat": "json"}},
        )
        assert config.common.output_format == "json"

    def test_snake_case_keys_accepted(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text("common:\n  extract_responses: true\n")
        config = ConfigLoader().load(tmp_path)
        assert config.common.extract_responses is True

    def test_snake_case_source_outranks_camel_case_source(self, tmp_path):
        _write_package_json(tmp_path, {"nestjs": {"auth": {"authGuards": ["PkgGuard"]}}})
        (tmp_path / "extractor.config.yaml").write_text("nestjs:\n  auth:\n    auth_guards: [YamlGuard]\n")
        config = ConfigLoader().load(tmp_path)
        assert config.nestjs.auth.auth_guards == ["YamlGuard"]

    def test_camel_case_source_outranks_snake_case_source(self, tmp_path):
        _write_package_json(tmp_path, {"common": {"response_depth": 4}})
        (tmp_path / "extractor.config.yaml").write_text("common:\n  responseDepth: 1\n")
        config = ConfigLoader().load(tmp_path)
        assert config.common.response_depth == 1

    def test_explicit_null_is_rejected(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text("common:\n  outputFormat: null\n")
        with pytest.raises(ConfigError, match="Invalid extractor configuration"):
            ConfigLoader().load(tmp_path)

    def test_custom_param_decorators(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text(
            "nestjs:\n"
            "  params:\n"
            "    customDecorators:\n"
            "      - name: CurrentUser\n"
            "        type: user\n"
        )
        config = ConfigLoader().load(tmp_path)
        decorator = config.nestjs.params.custom_decorators[0]
        assert decorator.name == "CurrentUser"
        assert decorator.type == "user"

    def test_empty_yaml_file_is_ignored(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text("")
        assert ConfigLoader().load(tmp_path) == ExtractorConfig()

    def test_malformed_yaml_raises(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text("common: [unclosed\n")
        with pytest.raises(ConfigError, match="Malformed config file"):
            ConfigLoader().load(tmp_path)

    def test_malformed_json_raises(self, tmp_path):
        (tmp_path / "extractor.config.json").write_text("{not json")
        with pytest.raises(ConfigError):
            ConfigLoader().load(tmp_path)

    def test_non_mapping_document_raises(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ConfigError, match="mapping"):
            ConfigLoader().load(tmp_path)

    def test_invalid_value_raises(self, tmp_path):
        (tmp_path / "extractor.config.yaml").write_text("common:\n  outputFormat: xml\n")
        with pytest.raises(ConfigError, match="Invalid extractor configuration"):
            ConfigLoader().load(tmp_path)

    def test_non_mapping_package_json_field_raises(self, tmp_path):
        _write_package_json(tmp_path, ["not", "a", "mapping"])
        with pytest.raises(ConfigError):
            ConfigLoader().load(tmp_path)

    def test_config_is_frozen(self, tmp_path):
        config = ConfigLoader().load(tmp_path)
        with pytest.raises(Exception):
            config.common.output_format = "json"
