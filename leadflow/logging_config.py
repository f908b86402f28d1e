"""
Structured logging configuration.

Called once from create_app(). Supports text (human-readable) and JSON formats
via LOG_FORMAT env var. LOG_LEVEL defaults to INFO.
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone


# Lead context passed by the services as `extra=lead_context(...)`
CONTEXT_FIELDS = ('lead_id', 'task_id', 'interaction_type', 'segment')


def lead_context(lead_id=None, task_id=None, interaction_type=None, segment=None):
    """Build the `extra` dict for a log call; unset fields are left out."""
    values = {
        'lead_id': lead_id,
        'task_id': task_id,
        'interaction_type': getattr(interaction_type, 'value', interaction_type),
        'segment': getattr(segment, 'value', segment),
    }
    return {k: v for k, v in values.items() if v is not None}


def record_context(record):
    return {name: getattr(record, name) for name in CONTEXT_FIELDS if getattr(record, name, None)}


class JSONFormatter(logging.Formatter):
    """Single-line JSON log formatter for production log aggregators."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        entry.update(record_context(record))
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


class ContextFormatter(logging.Formatter):
    """Text formatter that appends lead context, e.g. `[lead=ab12 task=cd34]`."""

    LABELS = {'lead_id': 'lead', 'task_id': 'task', 'interaction_type': 'type', 'segment': 'segment'}

    def format(self, record):
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        tags = ' '.join(f"{self.LABELS[k]}={v}" for k, v in context.items())
        return f"{line} [{tags}]"


# Third-party loggers that are noisy at INFO
_NOISY_LOGGERS = [
    'urllib3',
    'requests',
    'redis',
    'sqlalchemy.engine',
    'alembic',
]


def configure_logging(app=None):
    """
    Set up root logger with format/level from env vars.

    Environment variables:
        LOG_LEVEL  — Python log level name (default: INFO)
        LOG_FORMAT — "text" (default) or "json"
    """
    level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
    level = getattr(logging, level_name, logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO

    log_format = os.getenv('LOG_FORMAT', 'text').lower()

    root = logging.getLogger()
    root.setLevel(level)

    # Remove any existing handlers to avoid duplicates on re-init
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ContextFormatter(
            '[%(asctime)s] %(levelname)s %(name)s — %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))

    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        app.logger.setLevel(level)
