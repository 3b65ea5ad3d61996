"""Application-level exceptions.

Every exception carries an `error_code` which the API adapters echo back to
callers as `errorCode`.

Taxonomy:
    ClientError:
        Caller's fault. Surfaced immediately, never retried by the service.
    InvariantViolationError:
        A defect in a uniqueness guarantee. Fatal to the request, logged at
        CRITICAL and never silently retried.
    ConfigurationError:
        The application was started with missing or invalid settings.
    InfrastructureError:
        The backing infrastructure cannot serve the request.

Transient data store errors live in `shortcore.dao.exceptions`.
"""


class ShortCoreError(Exception):
    """Base exception for all application-specific errors."""

    error_code = 'app:shortcore_error'


class ClientError(ShortCoreError):
    """Base exception for errors caused by the caller's input."""

    error_code = 'client:client_error'


class InvalidUrlError(ClientError):
    """Raised when a target URL is not an absolute http(s) URL."""

    error_code = 'client:invalid_url'


class MalformedKeyError(ClientError):
    """Raised when a key contains foreign characters or cannot be an identifier."""

    error_code = 'client:malformed_key'


class AliasTakenError(ClientError):
    """Raised when a custom alias is already mapped. The caller can pick another alias."""

    error_code = 'client:alias_taken'


class KeyNotFoundError(ClientError):
    """Raised when a key has no live mapping."""

    error_code = 'client:key_not_found'


class InvariantViolationError(ShortCoreError):
    """Base exception for broken uniqueness or ordering guarantees."""

    error_code = 'invariant:invariant_violation'


class AllocatorInvariantViolatedError(InvariantViolationError):
    """Raised when a generated key is already held by another generated mapping."""

    error_code = 'invariant:allocator_invariant_violated'


class ClockDriftError(InvariantViolationError):
    """Raised when the wall clock moves backwards further than tolerated."""

    error_code = 'invariant:clock_drift'


class ConfigurationError(ShortCoreError):
    """Base exception for all configuration errors."""

    error_code = 'config:configuration_error'


class MissingEnvironmentVariableError(ConfigurationError, KeyError):
    """Raised when a required environment variable is missing."""

    error_code = 'config:missing_environment_variable_error'


class BadConfigurationError(ConfigurationError, ValueError):
    """Raised when the application is configured with invalid parameters."""

    error_code = 'config:bad_configuration_error'


class InfrastructureError(ShortCoreError):
    """Base exception for all infrastructure errors."""

    error_code = 'infra:infrastructure_error'


class IdentifierSpaceExhaustedError(InfrastructureError):
    """Raised when a reservation would cross the largest 64-bit identifier."""

    error_code = 'infra:identifier_space_exhausted'
