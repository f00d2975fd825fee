from pathlib import Path

from endpoint_extractor.config.models import GuardAuthConfig
from endpoint_extractor.extractors.nestjs.auth import NestAuthDetector
from endpoint_extractor.extractors.nestjs.controllers import ControllerParser
from endpoint_extractor.extractors.nestjs.guards import GuardAnalyzer
from endpoint_extractor.frontend.project import Project

SOURCE = """
@Controller('items')
@UseGuards(SessionCheck)
export class ItemsController {
  @Get()
  list() {}

  @Get('mine')
  @UseGuards(ApiKeyAuthGuard)
  mine() {}

  @Get('open')
  @SkipAuth()
  open() {}

  @Get('flag')
  @SetMetadata('isPublic', false)
  flag() {}

  @Get('meta')
  @SetMetadata(IS_PUBLIC_KEY, true)
  meta() {}
}
"""


def _detect(method_name: str, config: GuardAuthConfig | None = None, global_guards=None):
    config = config or GuardAuthConfig()
    project = Project()
    controller = ControllerParser(project, public_decorators=config.public_decorators).parse_source(
        SOURCE, Path("/virtual/items.controller.ts")
    )
    method = next(m for m in controller.methods if m.name == method_name)
    detector = NestAuthDetector(config, GuardAnalyzer(project))
    return detector.detect_auth(controller, method, global_guards or [])


class TestNestAuthDetector:
    def test_unknown_guard_is_not_auth(self):
        auth = _detect("list")
        assert auth.required is False
        assert auth.confidence == "low"
        assert [(g.name, g.level, g.reason) for g in auth.guards] == [("SessionCheck", "class", "unknown")]

    def test_config_guard(self):
        auth = _detect("list", GuardAuthConfig(auth_guards=["SessionCheck"]))
        assert auth.required is True
        assert auth.confidence == "high"

    def test_config_and_pattern_mix_is_medium(self):
        auth = _detect("mine", GuardAuthConfig(auth_guards=["SessionCheck"]))
        assert auth.required is True
        assert auth.confidence == "medium"
        assert [g.reason for g in auth.guards] == ["config", "pattern"]

    def test_any_unknown_lowers_confidence(self):
        auth = _detect("mine")
        assert auth.required is True
        assert auth.confidence == "low"

    def test_public_decorator(self):
        auth = _detect("open")
        assert auth.required is False
        assert auth.confidence == "high"
        assert auth.guards == []

    def test_metadata_false_is_not_public(self):
        auth = _detect("flag", GuardAuthConfig(auth_guards=["SessionCheck"]))
        assert auth.required is True

    def test_metadata_key_reference(self):
        assert _detect("meta").required is False

    def test_global_guards_first(self):
        auth = _detect("mine", global_guards=["ThrottlerGuard"])
        assert [(g.name, g.level) for g in auth.guards] == [
            ("ThrottlerGuard", "global"),
            ("SessionCheck", "class"),
            ("ApiKeyAuthGuard", "method"),
        ]
        assert auth.guards[0].reason == "excluded"

    def test_no_guards_is_unknown(self):
        project = Project()
        controller = ControllerParser(project).parse_source(
            "@Controller()\nexport class Bare { @Get() ping() {} }\n",
            Path("/virtual/bare.controller.ts"),
        )
        detector = NestAuthDetector(GuardAuthConfig(), GuardAnalyzer(project))
        auth = detector.detect_auth(controller, controller.methods[0], [])
        assert auth.required == "unknown"
        assert auth.confidence == "low"
