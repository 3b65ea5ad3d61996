"""Utility functions for application configuration management.

Configuration is a single JSON/YAML document. In the cloud it is stored in
**AWS AppConfig**: each environment (`APP_ENV`) has a dedicated AppConfig
*Environment* within the shared AppConfig *Application*. When running locally
the same document is read from `config/<function>/<env>.yml` under the project
root.

The configuration document follows this structure:

    {
        "active_backend": "redis",
        "build": "2026.10.18",
        "configs": {
            "shorten_url": {
                "redis": {
                    "shards": {"s0": {"host": ..., "port": ..., "db": ...}, ...},
                    "authority": {"host": ..., "port": ..., "db": ...}
                },
                "sharding": {"version": 1, "buckets": 64, "shards": ["s0", "s1"]},
                "service": {"node_id": 1, "block_size": 1000, ...}
            },
            "redirect_url": { ... }
        }
    }

Each function loads its own section (e.g. `"shorten_url"`), reduced to the
active backend.

Functions:
    app_env() -> str
        Return the current application environment (`APP_ENV`), default `'local'`.
    app_name() -> str | None
        Return the application name (`APP_NAME`), or None if not set.
    app_prefix() -> str | None
        Return the key prefix for DAOs, or None if `APP_NAME` is not set.
    project_root() -> Path
        Return the project root directory, using `PROJECT_ROOT` when available.
    load_config(function_name: str) -> dict
        Load the configuration section of a function.

Classes:
    ServiceSettings:
        Typed view of the `service` section with validated defaults.

Example:
    >>> from shortcore.utils.config import load_config, ServiceSettings
    >>> config = load_config('shorten_url')
    >>> config['backend']
    'redis'
    >>> ServiceSettings.from_config(config).block_size
    1000
"""

import os
import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import boto3
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from shortcore.constants import ENV, Defaults
from shortcore.exceptions import BadConfigurationError, ConfigurationError
from shortcore.types import AWSClient
from shortcore.utils.helpers import require_environment
from shortcore.utils.runtime import running_locally, node_id


logger = logging.getLogger(__name__)


def app_env() -> str:
    """Return the current application environment by reading 'APP_ENV'

    Example:
        >>> os.environ['APP_ENV'] = 'dev'
        >>> app_env()
        'dev'
    """
    return os.environ.get(ENV.App.APP_ENV, 'local').lower()


def app_name() -> str | None:
    return os.environ.get(ENV.App.APP_NAME)


def project_root() -> Path:
    """Return the absolute path to the project root directory

    Falls back to the repository root (two levels above this file).
    """
    return Path(os.environ.get(ENV.App.PROJECT_ROOT, Path(__file__).resolve().parents[2]))


def app_prefix() -> str | None:
    """Return application prefix for DAOs

    Returns:
        str: app prefix as <app name>:<app env>.
             None if APP_NAME is not set.

    Example:
        >>> os.environ['APP_NAME'] = 'shortcore'
        >>> os.environ['APP_ENV'] = 'local'
        >>> app_prefix()
        'shortcore:local'
    """
    return None if app_name() is None else f'{app_name()}:{app_env()}'


def _select_section(document: dict[str, Any], function_name: str) -> dict[str, Any]:
    """Reduce a full configuration document to one function's section"""
    try:
        backend = document['active_backend']
        section = document['configs'][function_name]
        data = {
            'backend': backend,
            backend: section.get(backend, {}),
            'sharding': section.get('sharding', {}),
            'service': section.get('service', {}),
        }
    except (KeyError, TypeError, AttributeError) as e:
        raise BadConfigurationError(f"Configuration document has no usable section for '{function_name}'.") from e
    return data


def _load_local_document(function_name: str) -> dict[str, Any]:
    path = project_root() / 'config' / function_name / f'{app_env()}.yml'
    logger.debug('Loading configuration from local file.', extra={'path': str(path), 'functionName': function_name})
    with open(path, encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


@require_environment(ENV.AppConfig.APP_ID, ENV.AppConfig.ENV_ID, ENV.AppConfig.PROFILE_ID)
def _load_appconfig_document() -> dict[str, Any]:
    appconfig: AWSClient = boto3.client('appconfigdata')

    # Start an AppConfig data session
    session_token = appconfig.start_configuration_session(
        ApplicationIdentifier=os.environ[ENV.AppConfig.APP_ID],
        EnvironmentIdentifier=os.environ[ENV.AppConfig.ENV_ID],
        ConfigurationProfileIdentifier=os.environ[ENV.AppConfig.PROFILE_ID],
    )['InitialConfigurationToken']

    # Fetch the configuration
    response = appconfig.get_latest_configuration(ConfigurationToken=session_token)
    content = response['Configuration'].read()
    return json.loads(content.decode('utf-8'))


def load_config(function_name: str) -> dict[str, Any]:
    """Load configuration for a given function

    Reads `config/<function>/<env>.yml` when running locally, AWS AppConfig
    otherwise.

    Environment variables required outside local mode:
        APPCONFIG_APP_ID       – AppConfig Application ID
        APPCONFIG_ENV_ID       – AppConfig Environment ID
        APPCONFIG_PROFILE_ID   – AppConfig Configuration Profile ID

    Args:
        function_name (str):
            Name of the function (e.g., "shorten_url" or "redirect_url").

    Returns:
        dict: {'backend': <name>, <name>: {...}, 'sharding': {...}, 'service': {...}}

    Raises:
        FileNotFoundError:
            If the local configuration file does not exist.
        MissingEnvironmentVariableError:
            If AppConfig identifiers are missing outside local mode.
        ConfigurationError:
            If AWS AppConfig cannot be reached or rejects the request.
        BadConfigurationError:
            If the document has no section for the function.
    """
    if running_locally():
        document = _load_local_document(function_name)
        source = 'local'
    else:
        logger.debug('Trying to load configuration from AWS AppConfig.', extra={'functionName': function_name})
        try:
            document = _load_appconfig_document()
        except (BotoCoreError, ClientError) as e:
            raise ConfigurationError(f"Failed to load configuration for '{function_name}' from AWS AppConfig.") from e
        source = 'appconfig'

    data = _select_section(document, function_name)
    logger.debug('Loaded configuration.', extra={'functionName': function_name, 'source': source, 'build': document.get('build')})
    return data


# fmt: off
@dataclass(frozen=True)
class ServiceSettings:
    node_id: int = 0                                        # Node id for block reservations / composite ids
    allocator: str = 'block'                                # 'block' (range reservation) or 'composite'
    block_size: int = Defaults.BLOCK_SIZE                   # Identifiers reserved per block
    key_min_length: int = Defaults.KEY_MIN_LENGTH           # Generated key padding
    key_salt: Optional[str] = None                          # Enables key obfuscation when set
    cache_capacity: int = Defaults.CACHE_CAPACITY           # Max entries in the lookup cache (0 disables it)
    cache_ttl_seconds: float = Defaults.CACHE_TTL           # Default lookup cache TTL
    fresh_cache_ttl_seconds: Optional[float] = None         # Shorter TTL for just-created keys
    default_ttl_seconds: Optional[float] = None             # Mapping TTL when the caller gives none
    max_alias_skips: int = Defaults.MAX_ALIAS_SKIPS         # Identifiers burnt on alias squats before giving up
# fmt: on

    def __post_init__(self):
        if self.allocator not in {'block', 'composite'}:
            raise BadConfigurationError(f"Allocator must be 'block' or 'composite' (given value: {self.allocator!r}).")
        if self.node_id < 0:
            raise BadConfigurationError(f'Node id must be non-negative (given value: {self.node_id}).')
        if self.block_size < 1:
            raise BadConfigurationError(f'Block size must be positive (given value: {self.block_size}).')
        if self.cache_capacity < 0:
            raise BadConfigurationError(f'Cache capacity must be non-negative (given value: {self.cache_capacity}).')
        if self.cache_ttl_seconds <= 0:
            raise BadConfigurationError(f'Cache TTL must be positive (given value: {self.cache_ttl_seconds}).')
        if self.max_alias_skips < 0:
            raise BadConfigurationError(f'Max alias skips must be non-negative (given value: {self.max_alias_skips}).')

    @classmethod
    def from_config(cls, app_config: dict[str, Any]) -> 'ServiceSettings':
        """Build settings from a `load_config()` result

        Unknown keys in the `service` section are ignored with a warning.
        NODE_ID from the environment overrides the configured node id.
        """
        section = dict(app_config.get('service') or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            logger.warning('Ignoring unknown service settings.', extra={'settings': unknown})

        values = {name: section[name] for name in known if name in section}
        env_node_id = node_id()
        if env_node_id is not None:
            values['node_id'] = env_node_id

        try:
            return cls(**values)
        except TypeError as e:
            raise BadConfigurationError(f'Invalid service settings: {e}') from e
