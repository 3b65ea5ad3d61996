"""Helper utilities.

Functions:
    base_url() -> str
        Extract correct public base URL from API Gateway event
    get_short_url() -> str
        Get string representation of short URL for a given key
    validate_url() -> str
        Ensure a target URL is an absolute http(s) URL
    to_seconds() -> float | None
        Normalize a duration given in seconds or as timedelta
    require_environment(*names: str) -> Callable
        Decorator: Ensure required environment variables are present
    guarantee_500_response(func) -> Callable
        Decorator: Turn unexpected handler exceptions into HTTP 500 responses

Example:
    >>> from shortcore.utils.helpers import validate_url
    >>> validate_url('https://example.com/a?b=c')
    'https://example.com/a?b=c'
    >>> validate_url('ftp://example.com')
    Traceback (most recent call last):
        ...
    shortcore.exceptions.InvalidUrlError: URL scheme must be http or https (given value: 'ftp://example.com').
"""

import functools
import json
import logging
import os
from collections.abc import Callable
from datetime import timedelta
from typing import Any, Optional
from urllib.parse import urlparse

from shortcore.constants import UNKNOWN_INTERNAL_SERVER_ERROR
from shortcore.exceptions import InvalidUrlError, MissingEnvironmentVariableError


logger = logging.getLogger(__name__)


def base_url(event: dict[str, Any]) -> str:
    """Extract public base URL from API Gateway event

    If a custom domain is configured, the stage name is omitted.
    If using the default AWS execute-api domain, the stage name is included.

    Args:
        event (dict): API Gateway event object passed to Lambda handler

    Returns:
        str: Base URL, e.g.:
             - "https://sho.rt"
             - "https://abc123.execute-api.us-east-1.amazonaws.com/Prod"
    """
    request_context = event.get('requestContext', {})
    domain = request_context.get('domainName', '')
    stage = request_context.get('stage', '')

    if domain and 'execute-api' not in domain:
        return f'https://{domain}'
    elif domain:
        return f'https://{domain}/{stage}'
    else:
        # Fallback: local invocation (SAM CLI, tests, etc.)
        return 'http://localhost:3000'


def get_short_url(key: str, event: dict[str, Any]) -> str:
    return f'{base_url(event).rstrip("/")}/{key}'


def validate_url(url: Any) -> str:
    """Ensure a target URL is an absolute http(s) URL

    Raises:
        InvalidUrlError:
            If the value is not a string, has whitespace, cannot be parsed,
            has a scheme other than http/https, or has no host.
    """
    if not isinstance(url, str) or not url:
        raise InvalidUrlError(f'URL must be a non-empty string (given value: {url!r}).')
    if any(char.isspace() for char in url):
        raise InvalidUrlError(f'URL must not contain whitespace (given value: {url!r}).')

    try:
        components = urlparse(url)
        hostname = components.hostname
    except ValueError as e:
        # e.g. an unclosed IPv6 bracket
        raise InvalidUrlError(f'URL cannot be parsed (given value: {url!r}).') from e

    if components.scheme not in {'http', 'https'}:
        raise InvalidUrlError(f'URL scheme must be http or https (given value: {url!r}).')
    if not hostname:
        raise InvalidUrlError(f'URL must include a host (given value: {url!r}).')
    return url


def to_seconds(duration: Optional[int | float | timedelta]) -> Optional[float]:
    """Normalize a duration into seconds

    Raises:
        ValueError:
            If the duration is not positive.
        TypeError:
            If the duration is neither a number nor a timedelta.
    """
    if duration is None:
        return None
    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
    elif isinstance(duration, (int, float)) and not isinstance(duration, bool):
        seconds = float(duration)
    else:
        raise TypeError(f'Duration must be seconds or a timedelta (given type: {type(duration)}).')

    if seconds <= 0:
        raise ValueError(f'Duration must be positive (given value: {duration!r}).')
    return seconds


def require_environment(*names: str) -> Callable:
    """Decorator ensuring required environment variables are present.

    Args:
        *names (str):
            Names of required environment variables.

    Raises:
        MissingEnvironmentVariableError:
            If any required environment variable is missing or empty.

    Example:
        >>> @require_environment('APPCONFIG_APP_ID', 'APPCONFIG_ENV_ID')
        ... def my_function():
        ...     pass
        >>> my_function()
        MissingEnvironmentVariableError: Missing required environment variables: 'APPCONFIG_APP_ID', 'APPCONFIG_ENV_ID'
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            missing = [name for name in names if not os.environ.get(name)]
            if missing:
                missing_list = ', '.join(f"'{name}'" for name in missing)
                raise MissingEnvironmentVariableError(f'Missing required environment variables: {missing_list}')
            return func(*args, **kwargs)

        return wrapper

    return decorator


def guarantee_500_response(func: Callable) -> Callable:
    """Decorator: respond with HTTP 500 if a Lambda handler raises unexpectedly"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> dict:
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.exception('Unhandled exception in handler. Responding with 500.', extra={'event': UNKNOWN_INTERNAL_SERVER_ERROR})
            return {
                'statusCode': 500,
                'body': json.dumps(
                    {
                        'message': 'Internal Server Error',
                        'errorCode': UNKNOWN_INTERNAL_SERVER_ERROR,
                    }
                ),
            }

    return wrapper
