"""Built-in configuration values, used when no project source overrides them."""

DEFAULT_OUTPUT_FORMAT = "yaml"
DEFAULT_RESPONSE_DEPTH = 2

DEFAULT_GUARD_PATTERNS = [
    ".*AuthGuard$",
    ".*JwtGuard$",
    ".*SessionGuard$",
    ".*TokenGuard$",
]

DEFAULT_EXCLUDE_GUARDS = ["ThrottlerGuard", "RateLimitGuard"]

DEFAULT_PUBLIC_DECORATORS = ["Public", "SkipAuth", "AllowAnonymous"]

DEFAULT_PUBLIC_METADATA_KEYS = ["isPublic", "IS_PUBLIC_KEY", "skipAuth"]

DEFAULT_MIDDLEWARE_NAMES = [
    "tokenVerification",
    "authGuard",
    "authenticate",
    "requireAuth",
    "verifyToken",
    "isAuthenticated",
    "authMiddleware",
    "jwtVerify",
    "verifyJWT",
]

DEFAULT_HOOK_POINTS = ["preHandler", "onRequest"]

NESTJS_ENTRY_FILE = "src/app.module.ts"
FASTIFY_ENTRY_FILE = "src/build.ts"

YAML_CONFIG_FILE = "extractor.config.yaml"
JSON_CONFIG_FILE = "extractor.config.json"
PACKAGE_JSON_CONFIG_KEY = "extractorConfig"
