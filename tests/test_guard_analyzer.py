import logging
from pathlib import Path

from endpoint_extractor.config.models import GuardAuthConfig
from endpoint_extractor.extractors.nestjs.guards import GuardAnalyzer
from endpoint_extractor.frontend.project import Project

FIXTURES = Path(__file__).parent / "fixtures"
NEST_APP = FIXTURES / "nest_app"


def _analyzer(files: dict[str, str], tmp_path: Path) -> GuardAnalyzer:
    for name, text in files.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
    project = Project(tmp_path)
    project.add_directory(tmp_path)
    return GuardAnalyzer(project)


class TestIsAuthGuard:
    def test_excluded_wins_over_pattern(self, tmp_path):
        config = GuardAuthConfig(exclude_guards=["LegacyAuthGuard"])
        result = _analyzer({}, tmp_path).is_auth_guard("LegacyAuthGuard", None, config)
        assert (result.is_auth, result.confidence, result.reason) == (False, "high", "excluded")

    def test_config_list(self, tmp_path):
        config = GuardAuthConfig(auth_guards=["SessionCheck"])
        result = _analyzer({}, tmp_path).is_auth_guard("SessionCheck", None, config)
        assert (result.is_auth, result.confidence, result.reason) == (True, "high", "config")

    def test_inheritance_through_chain(self, tmp_path):
        analyzer = _analyzer(
            {
                "jwt.guard.ts": "export class JwtGuardBase extends AuthGuard('jwt') {}\n",
                "admin.guard.ts": "export class AdminAccess extends JwtGuardBase {}\n",
            },
            tmp_path,
        )
        result = analyzer.is_auth_guard("AdminAccess", None, GuardAuthConfig())
        assert (result.is_auth, result.confidence, result.reason) == (True, "high", "inheritance")

    def test_pattern_match(self, tmp_path):
        result = _analyzer({}, tmp_path).is_auth_guard("ApiKeyAuthGuard", None, GuardAuthConfig())
        assert (result.is_auth, result.confidence, result.reason) == (True, "medium", "pattern")

    def test_unknown(self, tmp_path):
        analyzer = _analyzer({"roles.guard.ts": "export class RolesGuard implements CanActivate {}\n"}, tmp_path)
        result = analyzer.is_auth_guard("RolesGuard", None, GuardAuthConfig())
        assert (result.is_auth, result.confidence, result.reason) == (False, "low", "unknown")

    def test_invalid_pattern_skipped(self, tmp_path, caplog):
        config = GuardAuthConfig(guard_patterns=["(unclosed", ".*Check$"])
        with caplog.at_level(logging.WARNING, logger="endpoint_extractor"):
            result = _analyzer({}, tmp_path).is_auth_guard("SessionCheck", None, config)
        assert result.reason == "pattern"
        assert "invalid guard pattern" in caplog.text

    def test_explicit_class_used(self, tmp_path):
        analyzer = _analyzer({"g.ts": "export class Custom extends AuthGuard {}\n"}, tmp_path)
        decl = analyzer.project.find_classes("Custom")[0]
        result = analyzer.is_auth_guard("Custom", decl, GuardAuthConfig(guard_patterns=[]))
        assert result.reason == "inheritance"


class TestInheritance:
    def test_cycle_terminates(self, tmp_path):
        analyzer = _analyzer(
            {
                "a.guard.ts": "export class AGuard extends BGuard {}\n",
                "b.guard.ts": "export class BGuard extends AGuard {}\n",
            },
            tmp_path,
        )
        result = analyzer.is_auth_guard("AGuard", None, GuardAuthConfig())
        assert result.reason == "unknown"
        assert result.is_auth is False
        other = analyzer.is_auth_guard("BGuard", None, GuardAuthConfig())
        assert other.reason == "unknown"
        assert other.is_auth is False

    def test_other_call_base_is_not_auth(self, tmp_path):
        analyzer = _analyzer({"m.ts": "export class Mixed extends mixin(Base) {}\n"}, tmp_path)
        assert analyzer.check_auth_guard_inheritance(analyzer.project.find_classes("Mixed")[0]) is False

    def test_results_are_cached(self, tmp_path):
        analyzer = _analyzer({"g.ts": "export class Cached extends AuthGuard('local') {}\n"}, tmp_path)
        decl = analyzer.project.find_classes("Cached")[0]
        assert analyzer.check_auth_guard_inheritance(decl) is True
        assert analyzer._cache == {"Cached": True}
        analyzer.clear_cache()
        assert analyzer._cache == {}

    def test_fixture_guards(self):
        project = Project(NEST_APP)
        project.add_directory(NEST_APP)
        analyzer = GuardAnalyzer(project)
        assert analyzer.is_auth_guard("CustomAuthGuard", None, GuardAuthConfig()).reason == "inheritance"
        assert analyzer.is_auth_guard("ThrottlerGuard", None, GuardAuthConfig()).reason == "excluded"


class TestFindGuardClass:
    def test_ambiguous_declarations_warn_once(self, tmp_path, caplog):
        analyzer = _analyzer(
            {
                "a/dup.guard.ts": "export class DupGuard {}\n",
                "b/dup.guard.ts": "export class DupGuard extends AuthGuard('jwt') {}\n",
            },
            tmp_path,
        )
        with caplog.at_level(logging.WARNING, logger="endpoint_extractor"):
            first = analyzer.find_guard_class("DupGuard")
            analyzer.find_guard_class("DupGuard")

        assert first.file.path == (tmp_path / "a" / "dup.guard.ts").resolve()
        assert caplog.text.count("is declared in 2 files") == 1

    def test_missing_class(self, tmp_path):
        assert _analyzer({}, tmp_path).find_guard_class("Nowhere") is None
