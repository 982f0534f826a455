"""
Structured Logging - Monitoring Layer

Provides structured logging with:
- JSON formatting for log aggregation
- Request ID injection via context variables
- Keyword context fields on every call (key=..., ttl=...)
- Presets per environment

@.architecture
Incoming: app.py, api/dependencies.py, core/cache/*.py via get_logger() --- {str log_level, str format_type, Dict[str, str] module_levels, str request_id}
Processing: configure_logging(), JSONFormatter.format(), set_request_context(), StructuredLogger._log_with_context() --- {4 jobs: context_injection, formatting, log_configuration, structured_logging}
Outgoing: sys.stdout, Log files, All modules --- {StructuredLogger instances, JSON formatted logs, context variables}
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

request_id_ctx: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter.

    One JSON object per line, with the request ID and any keyword context
    passed to ``StructuredLogger`` under ``extra``.
    """

    def __init__(self, include_traceback: bool = True):
        super().__init__()
        self.include_traceback = include_traceback

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        request_id = request_id_ctx.get()
        if request_id:
            log_data['request_id'] = request_id

        if record.exc_info and self.include_traceback:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        if hasattr(record, 'extra_fields'):
            log_data['extra'] = record.extra_fields

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that appends context fields as key=value pairs."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)-28s | [%(request_id)s] | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, 'extra_fields', None)
        if fields:
            line += ' | ' + ' '.join(f'{k}={v}' for k, v in fields.items())
        return line


class ContextFilter(logging.Filter):
    """Adds the current request ID to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or '-'
        return True


class StructuredLogger:
    """
    Wrapper for a stdlib logger that accepts context as keyword arguments.

    Usage:
        logger = get_logger(__name__)
        logger.info("Cache set with TTL", key="session:1", ttl=1800)
        logger.error("Cleanup failed", pattern="cache:temp:*", exc_info=True)
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log_with_context(self, level: int, message: str, **kwargs: Any) -> None:
        exc_info = kwargs.pop('exc_info', False)
        extra = {'extra_fields': kwargs} if kwargs else {}
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs: Any) -> None:
        self._log_with_context(logging.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log at error level with the active exception's traceback."""
        kwargs['exc_info'] = True
        self._log_with_context(logging.ERROR, message, **kwargs)


def configure_logging(
    level: str = "INFO",
    format_type: str = "json",
    log_file: Optional[Path] = None,
    enable_console: bool = True,
    module_levels: Optional[Dict[str, str]] = None
) -> None:
    """
    Configure root logging for the application.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Output format ("json" or "text")
        log_file: Optional file path for log output
        enable_console: Enable console (stdout) logging
        module_levels: Per-module log levels (e.g. {"redis": "WARNING"})
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter: logging.Formatter = JSONFormatter() if format_type == "json" else TextFormatter()

    handlers = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        console_handler.addFilter(ContextFilter())
        handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(ContextFilter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []
    for handler in handlers:
        root_logger.addHandler(handler)

    for module_name, module_level in (module_levels or {}).items():
        logging.getLogger(module_name).setLevel(getattr(logging, module_level.upper(), logging.INFO))

    # Silence noisy libraries
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger (usually for ``__name__``)."""
    return StructuredLogger(name)


def set_request_context(request_id: Optional[str] = None) -> None:
    """Set the request ID for log records emitted by the current task."""
    if request_id:
        request_id_ctx.set(request_id)


def clear_request_context() -> None:
    request_id_ctx.set(None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


LOGGING_PRESETS = {
    'development': {
        'level': 'DEBUG',
        'format_type': 'text',
        'enable_console': True,
        'module_levels': {
            'redis': 'WARNING',
            'asyncio': 'WARNING',
        }
    },
    'production': {
        'level': 'INFO',
        'format_type': 'json',
        'enable_console': True,
        'module_levels': {
            'redis': 'WARNING',
            'uvicorn.access': 'WARNING',
            'asyncio': 'WARNING',
        }
    },
    'testing': {
        'level': 'WARNING',
        'format_type': 'text',
        'enable_console': True,
        'module_levels': {}
    }
}


def configure_from_preset(preset: str = 'development', **overrides: Any) -> None:
    """
    Configure logging from a preset.

    Args:
        preset: Preset name ('development', 'production', or 'testing')
        **overrides: Override preset values
    """
    if preset not in LOGGING_PRESETS:
        raise ValueError(f"Unknown preset: {preset}. Available: {list(LOGGING_PRESETS.keys())}")

    config = LOGGING_PRESETS[preset].copy()
    config.update(overrides)

    configure_logging(**config)
