from shortcore.utils.config import app_env, app_name, project_root, app_prefix, load_config, ServiceSettings
from shortcore.utils.helpers import base_url, get_short_url, validate_url, to_seconds, require_environment
from shortcore.utils.encoder import KeyEncoder, encode_key, decode_key
from shortcore.utils.logging import initialize_logging


__all__ = [
    'KeyEncoder',
    'encode_key',
    'decode_key',
    'app_env',
    'app_name',
    'app_prefix',
    'project_root',
    'load_config',
    'ServiceSettings',
    'base_url',
    'get_short_url',
    'validate_url',
    'to_seconds',
    'require_environment',
    'initialize_logging',
]
