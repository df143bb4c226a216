import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path

CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s'

# Third-party loggers that are too chatty at INFO.
QUIET_LOGGERS = ('httpx', 'httpcore', 'aiosqlite')


class CustomJSONEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, datetime):
            return o.isoformat()
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return super().default(o)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record. Structured fields passed as
    ``extra={'extra_data': {...}}`` land under ``data``.
    """
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, UTC).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'location': f'{record.module}.{record.funcName}:{record.lineno}',
        }

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry['exception'] = {
                'type': exc_type.__name__,
                'message': str(exc_value),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        extra_data = getattr(record, 'extra_data', None)
        if extra_data is not None:
            entry['data'] = extra_data

        return json.dumps(entry, ensure_ascii=False, cls=CustomJSONEncoder)


def _rotating_json_handler(path: Path, level: int, max_file_size: int, backup_count: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=max_file_size, backupCount=backup_count, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def configure_logging(
        level: str = 'INFO',
        log_directory: str | None = None,
        max_file_size: int = 10 * 1024 * 1024,
        backup_count: int = 5
) -> None:
    """Console output always; rotating JSON files under ``log_directory`` when given.

    ``dashboard.log`` receives everything, ``errors.log`` warnings and above.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.DEBUG)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    root_logger.addHandler(console_handler)

    if not log_directory:
        return

    directory = Path(log_directory)
    directory.mkdir(parents=True, exist_ok=True)
    root_logger.addHandler(
        _rotating_json_handler(directory / 'dashboard.log', logging.DEBUG, max_file_size, backup_count)
    )
    root_logger.addHandler(
        _rotating_json_handler(directory / 'errors.log', logging.WARNING, max_file_size, backup_count)
    )
