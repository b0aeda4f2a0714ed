"""host:port address parsing."""

from typing import Tuple

from metastore.exceptions import InvalidArgumentError


def parse_host_port(address: str, what: str = "address") -> Tuple[str, int]:
    """Split ``host:port`` (or ``[v6-host]:port``) into its parts.

    Args:
        address: Address string
        what: Label used in the error message

    Returns:
        ``(host, port)`` tuple

    Raises:
        InvalidArgumentError: If the address is malformed
    """
    if not isinstance(address, str):
        raise InvalidArgumentError(f"Invalid {what}", context={"address": repr(address)})

    host, sep, port_str = address.strip().rpartition(":")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        # bare IPv6 without brackets is ambiguous
        host = ""

    if not sep or not host or not port_str.isdigit():
        raise InvalidArgumentError(f"Invalid {what}", context={"address": address})

    port = int(port_str)
    if not 0 < port < 65536:
        raise InvalidArgumentError(f"Invalid {what}", context={"address": address})
    return host, port


def format_address(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"
