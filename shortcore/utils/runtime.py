"""Runtime utilities

Functions:
    running_locally() -> bool:
        True if running in local SAM or APP_ENV=local, False otherwise.
    node_id(default) -> int:
        Node id of this process, read from NODE_ID.

Example:
    >>> from shortcore.utils.runtime import running_locally
    >>> os.environ['APP_ENV'] = 'local'
    >>> running_locally()
    True
"""

import os

from shortcore.constants import ENV
from shortcore.exceptions import BadConfigurationError


def running_locally() -> bool:
    """Check if the application is running locally (APP_ENV=local or sam local invoke)"""
    env = os.getenv(ENV.App.APP_ENV, '').lower()
    return env == 'local' or os.getenv(ENV.App.AWS_SAM_LOCAL) == 'true'


def node_id(default: int | None = None) -> int | None:
    """Return this node's id from the NODE_ID environment variable

    Raises:
        BadConfigurationError:
            If NODE_ID is set but not a non-negative integer.
    """
    raw = os.getenv(ENV.App.NODE_ID)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise BadConfigurationError(f'NODE_ID must be an integer (given value: {raw!r}).') from e
    if value < 0:
        raise BadConfigurationError(f'NODE_ID must be non-negative (given value: {raw!r}).')
    return value
