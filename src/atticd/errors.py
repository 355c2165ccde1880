"""Errors raised while resolving the server configuration.

Every error here is fatal: the server refuses to start rather than run
with a partially-resolved configuration.
"""


class ConfigError(Exception):
    """Base class for configuration resolution failures."""


class SourceUnavailable(ConfigError):
    """No configuration text could be obtained from the selected source."""


class SchemaViolation(ConfigError):
    """The configuration text does not match the server schema.

    Attributes:
        errors: List of ``(location, message)`` pairs. ``location`` is a
            dotted field path such as ``storage.bucket`` (empty for
            document-level problems like TOML syntax errors).
    """

    def __init__(self, errors: list[tuple[str, str]]):
        self.errors = errors
        details = "; ".join(
            f"{loc}: {msg}" if loc else msg for loc, msg in errors
        )
        super().__init__(f"Invalid configuration: {details}")


class InvalidSecretEncoding(ConfigError):
    """The HS256 secret is not valid base64."""


class MissingSecret(ConfigError):
    """No HS256 secret was supplied in the config or the environment."""
