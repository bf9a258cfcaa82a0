"""Application-level exceptions raised by the link shortener services.

The routing layer is expected to translate these into transport responses.
`ExpiredError` and `OwnershipError` both derive from `NotFoundError` so callers
can surface every lookup failure the same way without leaking whether a short
code exists.
"""


class LinkShortenerError(Exception):
    """Base exception for all application-specific errors."""

    error_code = 'app:linkshortener_error'


class ValidationError(LinkShortenerError):
    """Raised on malformed input (bad URL scheme, bad slug format, past expiry)."""

    error_code = 'url:validation_error'


class ConflictError(LinkShortenerError):
    """Raised when a short code or custom slug is already taken."""

    error_code = 'url:conflict_error'


class NotFoundError(LinkShortenerError):
    """Raised when a short code is unknown or inactive."""

    error_code = 'url:not_found_error'


class ExpiredError(NotFoundError):
    """Raised when a short code exists but is past its expiration."""

    error_code = 'url:expired_error'


class OwnershipError(NotFoundError):
    """Raised when a short code exists but belongs to somebody else."""

    error_code = 'url:ownership_error'


class ConfigurationError(LinkShortenerError):
    """Base exception for all configuration errors."""

    error_code = 'config:configuration_error'


class MissingEnvironmentVariableError(ConfigurationError):
    """Raised when a required environment variable is missing."""

    error_code = 'config:missing_environment_variable_error'


class BadConfigurationError(ConfigurationError):
    """Raised when the application is configured with invalid parameters."""

    error_code = 'config:bad_configuration_error'
