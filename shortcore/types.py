from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from botocore.client import BaseClient


# Type aliases for Python dictionaries
type LambdaEvent = dict[str, Any]
type LambdaContext = Any
type LambdaResponse = dict[str, Any]
type AppConfig = dict[str, Any]
type RedisConnectionConfig = dict[str, Any]
type AWSClient = BaseClient

# Shard ids are plain strings, e.g. 's0'
type ShardId = str

# An identifier block is an inclusive (start, end) range
type IdentifierBlock = tuple[int, int]

# Durations may be given in seconds or as timedelta
type Duration = int | float | timedelta

# Injectable clocks
type UtcClock = Callable[[], datetime]
type MonotonicClock = Callable[[], float]
