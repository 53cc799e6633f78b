"""
Logging Configuration for the Benefits Navigation Platform.

Provides structured logging with:
- JSON formatting for production
- Human-readable formatting for development
- Estimate-preview logging for compute audit trails
- Performance metrics tracking
"""

import asyncio
import json
import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional

# Context variables for request tracking
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar('session_id', default=None)


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Outputs logs as JSON objects for easy parsing by log aggregators.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        session_id = session_id_var.get()
        if session_id:
            log_data["session_id"] = session_id

        # Add extra fields from the record
        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ReadableFormatter(logging.Formatter):
    """
    Human-readable log formatter for development.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human readability."""
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']

        timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
        level = f"{color}{record.levelname:8s}{reset}"

        message = f"{timestamp} {level} [{record.name}] {record.getMessage()}"

        if hasattr(record, 'extra_data') and record.extra_data:
            extras = ' | '.join(f"{k}={v}" for k, v in record.extra_data.items())
            message += f" | {extras}"

        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return message


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that includes context in all log messages.
    """

    def process(self, msg: str, kwargs: Dict) -> tuple:
        """Add context to log message."""
        extra = kwargs.get('extra', {})

        request_id = request_id_var.get()
        if request_id:
            extra['request_id'] = request_id

        session_id = session_id_var.get()
        if session_id:
            extra['session_id'] = session_id

        # Merge with any existing extra data
        if 'extra_data' not in extra:
            extra['extra_data'] = {}
        extra['extra_data'].update(self.extra)

        kwargs['extra'] = extra
        return msg, kwargs


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[Path] = None
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON formatted logs
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    root_logger.handlers.clear()

    if json_output:
        formatter = JsonFormatter()
    else:
        formatter = ReadableFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JsonFormatter())  # Always JSON for files
        root_logger.addHandler(file_handler)

    # Set levels for noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str, **extra) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (typically __name__)
        **extra: Additional context to include in all logs

    Returns:
        ContextLogger instance
    """
    base_logger = logging.getLogger(name)
    return ContextLogger(base_logger, extra)


class EstimateLogger:
    """
    Specialized logger for tax estimate previews.

    Records every compute attempt of a preview controller with its
    sequence number, duration and outcome.
    """

    def __init__(self, preview_id: Optional[str] = None):
        """
        Initialize estimate logger.

        Args:
            preview_id: Identifier used to correlate one preview's log lines
        """
        self.logger = get_logger("estimate_preview", preview_id=preview_id)
        self.preview_id = preview_id
        self._start_times: Dict[int, float] = {}

    def start_compute(self, sequence: int, filing_status: str, tax_year: int) -> None:
        """Log the start of a compute attempt."""
        self._start_times[sequence] = time.time()
        self.logger.info(
            "Starting tax estimate",
            extra={'extra_data': {
                'sequence': sequence,
                'filing_status': filing_status,
                'tax_year': tax_year,
            }}
        )

    def _duration_ms(self, sequence: int) -> int:
        start = self._start_times.pop(sequence, None)
        return int((time.time() - start) * 1000) if start else 0

    def log_success(self, sequence: int, total_refund: int, total_tax_liability: int) -> None:
        """Log a successful compute attempt."""
        self.logger.info(
            "Tax estimate computed",
            extra={'extra_data': {
                'sequence': sequence,
                'duration_ms': self._duration_ms(sequence),
                'total_refund': total_refund,
                'total_tax_liability': total_tax_liability,
            }}
        )

    def log_failure(self, sequence: int, error: str) -> None:
        """Log a failed compute attempt."""
        self.logger.warning(
            "Tax estimate failed, keeping last good estimate",
            extra={'extra_data': {
                'sequence': sequence,
                'duration_ms': self._duration_ms(sequence),
                'error': error,
            }}
        )

    def log_discarded(self, sequence: int, applied: int) -> None:
        """Log a response dropped because a newer one was already applied."""
        self._start_times.pop(sequence, None)
        self.logger.debug(
            "Discarding stale estimate response",
            extra={'extra_data': {
                'sequence': sequence,
                'applied_sequence': applied,
            }}
        )


def log_performance(name: Optional[str] = None) -> Callable:
    """
    Decorator to log function performance.

    Args:
        name: Optional name override for the log entry

    Returns:
        Decorator function
    """
    def decorator(func: Callable) -> Callable:
        func_name = name or func.__name__

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger = get_logger("performance")
            start = time.time()
            try:
                result = await func(*args, **kwargs)
                duration_ms = int((time.time() - start) * 1000)
                logger.info(
                    f"{func_name} completed",
                    extra={'extra_data': {'duration_ms': duration_ms}}
                )
                return result
            except Exception as e:
                duration_ms = int((time.time() - start) * 1000)
                logger.error(
                    f"{func_name} failed",
                    extra={'extra_data': {
                        'duration_ms': duration_ms,
                        'error': str(e),
                    }}
                )
                raise

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            logger = get_logger("performance")
            start = time.time()
            try:
                result = func(*args, **kwargs)
                duration_ms = int((time.time() - start) * 1000)
                logger.info(
                    f"{func_name} completed",
                    extra={'extra_data': {'duration_ms': duration_ms}}
                )
                return result
            except Exception as e:
                duration_ms = int((time.time() - start) * 1000)
                logger.error(
                    f"{func_name} failed",
                    extra={'extra_data': {
                        'duration_ms': duration_ms,
                        'error': str(e),
                    }}
                )
                raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
