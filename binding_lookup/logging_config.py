"""
Logging configuration for the Binding Lookup clients.

Structured (JSON) or human-readable console output, optional rotating file
output, process metrics on every record and per-level counters.
"""

import logging
import logging.handlers
import json
import sys
import time
from datetime import datetime
from typing import Dict, Any, Optional
from pathlib import Path
import psutil
import os

from .config import LoggingConfig


# Attributes every LogRecord carries; anything else arrived through ``extra``
_STANDARD_RECORD_FIELDS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
    'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'message',
    'taskName',
])

_PERFORMANCE_FIELDS = frozenset([
    'cpu_percent', 'memory_mb', 'uptime_seconds', 'process_id', 'thread_id', 'iso_timestamp',
])


class PerformanceFilter(logging.Filter):
    """Filter to add process metrics to log records."""

    def __init__(self):
        super().__init__()
        self.process = psutil.Process()
        self.start_time = time.time()

    def filter(self, record):
        """Add process metrics to the log record."""
        try:
            record.cpu_percent = self.process.cpu_percent()
            record.memory_mb = self.process.memory_info().rss / 1024 / 1024
        except psutil.Error:
            record.cpu_percent = 0.0
            record.memory_mb = 0.0

        record.uptime_seconds = time.time() - self.start_time
        record.process_id = os.getpid()
        record.thread_id = record.thread
        record.iso_timestamp = datetime.fromtimestamp(record.created).isoformat()
        return True


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_performance=True):
        super().__init__()
        self.include_performance = include_performance

    def format(self, record):
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_FIELDS and key not in _PERFORMANCE_FIELDS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        if self.include_performance and hasattr(record, 'cpu_percent'):
            log_entry["performance"] = {
                "cpu_percent": getattr(record, 'cpu_percent', 0),
                "memory_mb": getattr(record, 'memory_mb', 0),
                "uptime_seconds": getattr(record, 'uptime_seconds', 0),
                "process_id": getattr(record, 'process_id', 0),
                "thread_id": getattr(record, 'thread_id', 0)
            }

        return json.dumps(log_entry, default=str)


class ContextualFormatter(logging.Formatter):
    """Human-readable formatter with contextual information."""

    def __init__(self, include_performance=True):
        super().__init__()
        self.include_performance = include_performance

        format_str = (
            "%(iso_timestamp)s [%(levelname)s] %(name)s:%(funcName)s:%(lineno)d - %(message)s"
        )
        if include_performance:
            format_str += " [CPU: %(cpu_percent).1f%% MEM: %(memory_mb).1fMB]"

        self._formatter = logging.Formatter(format_str)

    def format(self, record):
        """Format log record with contextual information."""
        if not hasattr(record, 'iso_timestamp'):
            record.iso_timestamp = datetime.fromtimestamp(record.created).isoformat()
        if not hasattr(record, 'cpu_percent'):
            record.cpu_percent = 0.0
        if not hasattr(record, 'memory_mb'):
            record.memory_mb = 0.0

        return self._formatter.format(record)


class MetricsHandler(logging.Handler):
    """Handler counting records per level and upstream call outcome."""

    def __init__(self):
        super().__init__()
        self.metrics = {
            'total_logs': 0,
            'error_count': 0,
            'warning_count': 0,
            'info_count': 0,
            'debug_count': 0,
            'api_calls': 0,
            'failed_api_calls': 0,
            'last_error': None,
            'start_time': time.time()
        }

    def emit(self, record):
        """Collect metrics from log records."""
        self.metrics['total_logs'] += 1

        if record.levelno >= logging.ERROR:
            self.metrics['error_count'] += 1
            self.metrics['last_error'] = {
                'timestamp': datetime.fromtimestamp(record.created).isoformat(),
                'message': record.getMessage(),
                'logger': record.name,
                'function': record.funcName,
            }
        elif record.levelno >= logging.WARNING:
            self.metrics['warning_count'] += 1
        elif record.levelno >= logging.INFO:
            self.metrics['info_count'] += 1
        else:
            self.metrics['debug_count'] += 1

        if getattr(record, 'api_name', None) is not None:
            self.metrics['api_calls'] += 1
            if not getattr(record, 'success', True):
                self.metrics['failed_api_calls'] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Get collected metrics."""
        uptime = time.time() - self.metrics['start_time']
        total = self.metrics['total_logs']
        return {
            **self.metrics,
            'uptime_seconds': uptime,
            'error_rate': self.metrics['error_count'] / total if total > 0 else 0
        }


# Global metrics handler instance
_metrics_handler: Optional[MetricsHandler] = None


def get_logging_metrics() -> Dict[str, Any]:
    """Get logging metrics, empty until setup_logging has run."""
    if _metrics_handler:
        return _metrics_handler.get_metrics()
    return {}


def _build_formatter(config: LoggingConfig) -> logging.Formatter:
    if config.format.lower() == 'json' and config.structured:
        return JSONFormatter(include_performance=True)
    return ContextualFormatter(include_performance=True)


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure the root logger from a LoggingConfig.

    Args:
        config: Logging configuration object
    """
    global _metrics_handler

    level = getattr(logging, config.level.upper())

    if config.log_file:
        Path(config.log_file).parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    perf_filter = PerformanceFilter()

    _metrics_handler = MetricsHandler()
    root_logger.addHandler(_metrics_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.addFilter(perf_filter)
    console_handler.setFormatter(_build_formatter(config))
    root_logger.addHandler(console_handler)

    if config.log_file:
        file_handler = logging.handlers.RotatingFileHandler(
            filename=config.log_file,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.addFilter(perf_filter)
        file_handler.setFormatter(_build_formatter(config))
        root_logger.addHandler(file_handler)

    _configure_library_loggers()

    logging.getLogger(__name__).info(
        "Logging system initialized",
        extra={
            "log_level": config.level,
            "log_format": config.format,
            "structured": config.structured,
            "file_logging": bool(config.log_file),
        }
    )


def _configure_library_loggers():
    """Reduce noise from third-party libraries."""
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('uvicorn').setLevel(logging.INFO)
    logging.getLogger('fastapi').setLevel(logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_api_call(logger: logging.Logger, api_name: str, endpoint: str,
                 method: str, status_code: int, duration: float, **kwargs):
    """
    Log a completed upstream request.

    Args:
        logger: Logger instance
        api_name: Upstream service name (e.g. 'PubChem', 'RCSB')
        endpoint: Requested URL
        method: HTTP method
        status_code: HTTP status code
        duration: Request duration in seconds
        **kwargs: Additional context
    """
    success = 200 <= status_code < 400
    logger.log(
        logging.DEBUG if success else logging.INFO,
        "API call: %s %s %s -> %d",
        api_name, method, endpoint, status_code,
        extra={
            "api_name": api_name,
            "endpoint": endpoint,
            "method": method,
            "status_code": status_code,
            "duration_ms": duration * 1000,
            "success": success,
            **kwargs
        }
    )
