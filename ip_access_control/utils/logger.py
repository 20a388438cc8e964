"""Structured logging utilities for ip_access_control.

All library modules log through structlog with key/value context. The library
never configures logging on import; applications that want the JSON or
console renderers call configure_logging() once at startup. Blocked requests
are logged at WARNING, setup at INFO and per-request decisions at DEBUG.
"""

import logging
import sys
import time
from typing import IO, Any, Optional

import structlog
from structlog.types import Processor


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: Optional[IO[str]] = None,
) -> None:
    """Route ip_access_control (and host) structlog output to ``stream``.

    Args:
        log_level: Minimum level to emit (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: One JSON object per line if True, else console format.
        stream: Destination text stream. Defaults to stderr so log lines never
            mix with an application's stdout.

    Loggers are not cached, so a later structlog.configure() or
    structlog.testing.capture_logs() in the host still takes effect.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "ip_access_control") -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        structlog logger bound to ``name``
    """
    return structlog.get_logger(name)


class PerformanceLogger:
    """Context manager for timing an operation (e.g. a dynamic allow-list fetch)."""

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        warn_after_ms: float = 50.0,
    ):
        """Initialize performance logger.

        Args:
            operation: Name of the operation being timed
            logger: Logger instance to use (creates new if None)
            warn_after_ms: Durations above this are logged at WARNING
        """
        self.operation = operation
        self.logger = logger or get_logger()
        self.warn_after_ms = warn_after_ms
        self.start_time: float = 0
        self.end_time: float = 0

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.perf_counter()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed",
                operation=self.operation,
                duration_ms=duration_ms,
                error=str(exc_val),
                error_type=exc_type.__name__,
            )
        else:
            log_method = (
                self.logger.warning if duration_ms > self.warn_after_ms else self.logger.debug
            )
            log_method(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=duration_ms,
            )

    @property
    def duration_ms(self) -> float:
        """Get duration in milliseconds."""
        if self.end_time == 0:
            return (time.perf_counter() - self.start_time) * 1000
        return (self.end_time - self.start_time) * 1000
