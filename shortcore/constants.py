from enum import StrEnum


# Identifier space: unsigned 64-bit integers
MAX_IDENTIFIER = 2**64 - 1
IDENTIFIER_BITS = 64

# Longest key needed to spell MAX_IDENTIFIER in base 62 (62**11 > 2**64)
MAX_KEY_LENGTH = 11


class TTL:
    """TTL durations in seconds."""

    ONE_MINUTE = 60
    ONE_HOUR = 3_600  # 60 * 60
    ONE_DAY = 86_400  # 60 * 60 * 24
    ONE_YEAR = 31_536_000  # 60 * 60 * 24 * 365


class Defaults:
    """Default tuning values."""

    KEY_MIN_LENGTH = 7  # Generated keys are padded to at least 7 characters
    KEY_MULTIPLIER = 1315423911  # Odd, hence invertible modulo 2**64
    BLOCK_SIZE = 1_000  # Identifiers reserved per block
    SHARD_BUCKETS = 64  # Virtual buckets in a shard assignment table
    CACHE_CAPACITY = 10_000
    CACHE_TTL = TTL.ONE_HOUR
    MAX_ALIAS_SKIPS = 16
    MAX_CLOCK_DRIFT_MS = 5
    COMPOSITE_EPOCH_MS = 1_704_067_200_000  # 2024-01-01T00:00:00Z


class ENV:
    """Environment variable names."""

    class App(StrEnum):
        APP_ENV = 'APP_ENV'
        APP_NAME = 'APP_NAME'
        PROJECT_ROOT = 'PROJECT_ROOT'
        AWS_SAM_LOCAL = 'AWS_SAM_LOCAL'
        LOG_LEVEL = 'LOG_LEVEL'
        NODE_ID = 'NODE_ID'

    class AppConfig(StrEnum):
        APP_ID = 'APPCONFIG_APP_ID'
        ENV_ID = 'APPCONFIG_ENV_ID'
        PROFILE_ID = 'APPCONFIG_PROFILE_ID'


# Error codes
UNKNOWN_INTERNAL_SERVER_ERROR = 'UNKNOWN_INTERNAL_SERVER_ERROR'
