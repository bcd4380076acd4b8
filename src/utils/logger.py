"""
Structured logging configuration for the Question Bank Analyzer.
"""
import logging
import sys
import threading
from collections import deque
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
import structlog
from structlog.stdlib import LoggerFactory
from src.config.settings import settings


class LogBuffer:
    """In-memory ring buffer of recent log entries."""

    def __init__(self, max_entries: int = 1000):
        self._entries: deque = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def append(self, level: str, source: str, message: str) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "source": source,
            "message": message,
        }
        with self._lock:
            self._entries.append(entry)

    def get_entries(self, source: Optional[str] = None) -> List[Dict[str, str]]:
        with self._lock:
            entries = list(self._entries)
        if source:
            entries = [e for e in entries if e["source"] == source]
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


log_buffer = LogBuffer(max_entries=settings.log_buffer_size)


class BufferHandler(logging.Handler):
    """Mirror stdlib log records into the shared log buffer."""

    def __init__(self, buffer: LogBuffer, level: int = logging.INFO):
        super().__init__(level)
        self.buffer = buffer

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.buffer.append(record.levelname, record.name, record.getMessage())
        except Exception:
            self.handleError(record)


FILE_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _configure_structlog(json_output: bool) -> None:
    renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False) if json_output
        else structlog.dev.ConsoleRenderer(colors=True)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    return handler


def setup_logging() -> None:
    """Configure structured logging for the application.

    Safe to call repeatedly: handlers installed by an earlier call are replaced.
    """
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    _configure_structlog(json_output=not settings.debug)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler, (logging.FileHandler, BufferHandler)):
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.addHandler(_file_handler(log_dir / "app.log", logging.INFO))
    root_logger.addHandler(_file_handler(log_dir / "error.log", logging.ERROR))
    root_logger.addHandler(BufferHandler(log_buffer))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get logger instance for this class."""
        return get_logger(self.__class__.__name__)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log error with context information."""
    logger = get_logger("error")
    logger.error(
        "Error occurred",
        error_type=type(error).__name__,
        error_message=str(error),
        context=context or {}
    )


def log_performance(operation: str, duration: float, **kwargs: Any) -> None:
    """Log performance metrics."""
    logger = get_logger("performance")
    logger.info(
        f"Performance: {operation}",
        duration_seconds=duration,
        **kwargs
    )
