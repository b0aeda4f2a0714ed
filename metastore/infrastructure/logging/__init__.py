"""
Metastore Logging Infrastructure

Structlog configuration shared by every component of the client.
"""

from .config import MetaStoreLogger, configure_logging, get_logger

__all__ = [
    'MetaStoreLogger',
    'configure_logging',
    'get_logger',
]
