"""Custom exceptions for endpoint-extractor."""


class ExtractorError(Exception):
    """Base class for every error raised by the extraction pipeline."""


class ConfigError(ExtractorError):
    """
    Raised when a configuration source exists but cannot be used:
    YAML/JSON syntax errors, a non-mapping document, or values that
    fail validation.
    """


class EntryNotFoundError(ExtractorError):
    """Raised when the entry module of a project cannot be located."""

    def __init__(self, path):
        super().__init__(f"Entry file not found: {path}")
        self.path = path


class UnsupportedFrameworkError(ExtractorError):
    """Raised when no extractor exists for the requested framework."""
