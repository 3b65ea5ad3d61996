"""JSON logging for the handler processes

IMPORTANT: Call `initialize_logging()` in the handler package's `__init__.py`
file before any other logging is done.

Every record becomes one JSON document on stdout:
{
    "timestamp": "2026-10-18T12:00:00.000Z",
    "level": "INFO",
    "logger": "shortcore.service",
    "message": "Created mapping.",
    "key": "aaaaacb"
}

Fields passed through `extra={...}` (keys, shard ids, block ranges, error
codes) are attached to the document as-is; values that are not JSON
serializable are rendered with `str()`.
"""

import os
import json
import logging
import logging.config
from datetime import datetime, UTC
from typing import Optional

from shortcore.constants import ENV


# Chatty third-party loggers, capped at WARNING
LIBRARY_LOGGERS = ('botocore', 'boto3', 'urllib3')


def _record_attributes() -> frozenset[str]:
    # Whatever a bare LogRecord carries is not an `extra` field
    return frozenset(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


class JsonFormatter(logging.Formatter):
    """Render a LogRecord, including its `extra` fields, as one JSON line"""

    RECORD_ATTRS = _record_attributes()

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=UTC)
        document = {
            'timestamp': created.isoformat(timespec='milliseconds').replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        document.update((key, value) for key, value in vars(record).items() if key not in self.RECORD_ATTRS)

        if record.exc_info:
            document['exception'] = self.formatException(record.exc_info)

        return json.dumps(document, default=str)


def initialize_logging(level: Optional[str] = None) -> None:
    """Route all logging through the JSON formatter

    Args:
        level (Optional[str]):
            Root log level. Defaults to LOG_LEVEL, then INFO.
    """
    level = (level or os.getenv(ENV.App.LOG_LEVEL) or 'INFO').upper()
    logging.config.dictConfig(
        {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {'json': {'()': JsonFormatter}},
            'handlers': {
                'stdout': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'json',
                    'stream': 'ext://sys.stdout',
                }
            },
            'loggers': {name: {'level': 'WARNING'} for name in LIBRARY_LOGGERS},
            'root': {'level': level, 'handlers': ['stdout']},
        }
    )
