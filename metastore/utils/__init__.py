"""Small helpers shared across the client."""

from .addresses import format_address, parse_host_port

__all__ = ["format_address", "parse_host_port"]
