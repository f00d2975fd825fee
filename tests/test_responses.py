from pathlib import Path

from endpoint_extractor.extractors.fastify.routes import RouteFileParser
from endpoint_extractor.frontend.project import Project

FIXTURES = Path(__file__).parent / "fixtures"
ROUTES = FIXTURES / "fastify_app" / "src" / "routes"


def _fields(params):
    return {p.name: (p.type, p.required) for p in params}


def _parse(source: str, response_depth: int = 2):
    parser = RouteFileParser(Project(), extract_responses=True, response_depth=response_depth)
    return parser.parse_source(source, Path("/virtual/routes.ts"))


class TestFixtureResponses:
    def setup_method(self):
        parser = RouteFileParser(extract_responses=True)
        self.users = parser.parse(ROUTES / "users.ts")
        self.health = parser.parse(ROUTES / "health.ts")

    def test_return_object_literal(self):
        responses = self.health[0].responses
        assert len(responses.success) == 1
        success = responses.success[0]
        assert success.code == 200
        assert success.source == "return"
        assert _fields(success.data_type) == {"status": ("string", True), "uptime": ("number", True)}

    def test_return_typed_array(self):
        success = self.users[0].responses.success[0]
        assert success.data_type[0].name == "items"
        assert success.data_type[0].type.startswith("{ id: string; name: string; status: 'active' | 'inactive';")
        assert success.data_type[0].type.endswith("[]")

    def test_reply_send_and_error(self):
        responses = self.users[1].responses
        assert [s.source for s in responses.success] == ["reply.send"]
        assert _fields(responses.success[0].data_type) == {
            "id": ("string", True),
            "name": ("string", True),
            "status": ("'active' | 'inactive'", True),
            "profile": ("{ bio: string; }", False),
        }
        assert len(responses.errors) == 1
        error = responses.errors[0]
        assert error.code == 404
        assert error.message == "User not found"
        assert error.data_type == []

    def test_chained_status_code(self):
        success = self.users[2].responses.success[0]
        assert success.code == 201
        assert success.source == "reply.code"
        assert _fields(success.data_type) == {"id": ("string", True), "created": ("boolean", True)}

    def test_status_alias_without_payload(self):
        success = self.users[3].responses.success[0]
        assert success.code == 204
        assert success.data_type == []


class TestInlineResponses:
    def test_named_reply_parameter(self):
        source = (
            "fastify.get('/', async (req, res) => {\n"
            "  res.status(403).send({ message: 'Forbidden' });\n"
            "  res.send({ ok: true });\n"
            "});\n"
        )
        responses = _parse(source)[0].responses
        assert [(e.code, e.message) for e in responses.errors] == [(403, "Forbidden")]
        assert [s.code for s in responses.success] == [200]

    def test_message_from_variable(self):
        source = (
            "fastify.get('/', async (request, reply) => {\n"
            "  const payload = { message: 'Gone away' };\n"
            "  return reply.code(410).send(payload);\n"
            "});\n"
        )
        errors = _parse(source)[0].responses.errors
        assert [(e.code, e.message) for e in errors] == [(410, "Gone away")]

    def test_message_falls_back_to_type(self):
        source = (
            "fastify.get('/', async (request, reply) => {\n"
            "  const text: string = load();\n"
            "  reply.code(500).send({ message: text, retry: true });\n"
            "});\n"
        )
        error = _parse(source)[0].responses.errors[0]
        assert error.message == "string"
        assert _fields(error.data_type) == {"retry": ("boolean", True)}

    def test_nested_function_bodies_are_skipped(self):
        source = (
            "fastify.get('/', async (request, reply) => {\n"
            "  const helper = () => { return { inner: 1 }; };\n"
            "  return { outer: 'x' };\n"
            "});\n"
        )
        success = _parse(source)[0].responses.success
        assert len(success) == 1
        assert _fields(success[0].data_type) == {"outer": ("string", True)}

    def test_handler_reference_has_no_responses(self):
        source = "fastify.get('/', listUsers);\n"
        assert _parse(source)[0].responses is None

    def test_response_depth(self):
        source = (
            "interface Inner { value: number; }\n"
            "interface Outer { inner: Inner; }\n"
            "fastify.get('/', async () => {\n"
            "  const out: Outer = load();\n"
            "  return out;\n"
            "});\n"
        )
        shallow = _parse(source, response_depth=1)[0].responses.success[0]
        deep = _parse(source, response_depth=2)[0].responses.success[0]
        assert _fields(shallow.data_type) == {"inner": ("Inner", True)}
        assert _fields(deep.data_type) == {"inner": ("{ value: number; }", True)}
