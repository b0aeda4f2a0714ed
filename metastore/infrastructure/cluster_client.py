"""
Data-cluster client.

Only the connection lifecycle of the object-data cluster matters to the
metastore: it must be reachable when the client opens, and the connection is
released on shutdown. The client holds a TCP session to the first meta node
that answers.
"""

import asyncio
from typing import List, Optional, Protocol, Tuple

from metastore.infrastructure.logging import get_logger
from metastore.utils import format_address

logger = get_logger(__name__)


class ClusterClient(Protocol):
    """What the connection manager needs from a cluster client."""

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...


class MetaClusterClient:
    """Connects to one of the cluster's meta nodes."""

    def __init__(self, meta_nodes: List[Tuple[str, int]], connect_timeout: float = 1.5):
        self.meta_nodes = list(meta_nodes)
        self.connect_timeout = connect_timeout
        self.connected_node: Optional[Tuple[str, int]] = None
        self._writer: Optional[asyncio.StreamWriter] = None

    async def connect(self) -> None:
        """
        Open a session to the first reachable meta node.

        Raises:
            ConnectionError: If no meta node accepts a connection
        """
        failures = []
        for host, port in self.meta_nodes:
            try:
                _, writer = await asyncio.wait_for(
                    asyncio.open_connection(host, port), timeout=self.connect_timeout
                )
            except (OSError, asyncio.TimeoutError) as e:
                failures.append(f"{format_address(host, port)}: {e or type(e).__name__}")
                continue
            self._writer = writer
            self.connected_node = (host, port)
            logger.info("cluster.connected", node=format_address(host, port))
            return

        logger.error("cluster.connect_failed", attempts=failures)
        raise ConnectionError(f"No meta node reachable ({'; '.join(failures)})")

    async def close(self) -> None:
        if self._writer is None:
            return
        writer, self._writer = self._writer, None
        self.connected_node = None
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug("cluster.close_error", error=str(e))
