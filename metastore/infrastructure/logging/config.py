"""
Metastore Logging Configuration

Provides logging configuration using structlog with JSON formatting and
OpenTelemetry trace context injection.
"""

import logging
from typing import Any, Dict, Optional

import structlog
from opentelemetry import trace


class MetaStoreLogger:
    """
    Logger configuration with structured output.

    Configures structlog with processors for log level filtering, timestamps,
    exception rendering and trace context so every component of the client
    emits the same log structure.
    """

    def __init__(self, level: str = "INFO", json_output: bool = True):
        """
        Initialize the logger configuration.

        Args:
            level: Standard library level name
            json_output: Render JSON lines instead of console output
        """
        self.level = getattr(logging, str(level).upper(), logging.INFO)
        self.json_output = json_output
        self.configure_structlog()

    def configure_structlog(self) -> None:
        """
        Configure structlog with the processor chain.

        Sets up a processor chain that handles:
        - Log level filtering
        - Logger name and level addition
        - Timestamp formatting
        - Exception information
        - OpenTelemetry trace context
        - JSON or console output
        """
        logging.basicConfig(
            format="%(message)s",
            level=self.level,
        )

        renderer = (
            structlog.processors.JSONRenderer()
            if self.json_output
            else structlog.dev.ConsoleRenderer()
        )

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                self.add_trace_context,
                renderer,
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    @staticmethod
    def add_trace_context(logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add OpenTelemetry trace context to log entries.

        Args:
            logger: Logger instance
            method_name: Log method name
            event_dict: Event dictionary to process

        Returns:
            Event dictionary with trace context
        """
        span = trace.get_current_span()
        if span and span.is_recording():
            span_context = span.get_span_context()
            if 'trace_id' not in event_dict:
                event_dict['trace_id'] = format(span_context.trace_id, '032x')
            if 'span_id' not in event_dict:
                event_dict['span_id'] = format(span_context.span_id, '016x')

        return event_dict


_logger_config: Optional[MetaStoreLogger] = None


def configure_logging(level: str = "INFO", json_output: bool = True) -> MetaStoreLogger:
    """Explicitly (re)configure logging, e.g. from ``LoggingSettings``."""
    global _logger_config
    _logger_config = MetaStoreLogger(level=level, json_output=json_output)
    return _logger_config


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Configures structlog with defaults on first use unless
    ``configure_logging`` already ran.

    Args:
        name: Logger name, typically module or class name

    Returns:
        Configured structlog BoundLogger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("lock.acquired", identity="gw-1", attempts=3)
    """
    global _logger_config
    if _logger_config is None:
        _logger_config = MetaStoreLogger()

    return structlog.get_logger(name)
