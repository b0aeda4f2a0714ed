"""
Redis client construction for the metastore client.

Builds ``redis.asyncio`` handles configured the way the directory code
expects them: bounded connect timeout, no implicit command retries, and raw
HGETALL replies so record shape can be validated token by token.
"""

from typing import Any, Optional

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff

from metastore.infrastructure.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONNECT_TIMEOUT = 1.5


def _raw_reply(response, **options):
    return response


class RedisClientFactory:
    """Factory for creating configured Redis clients."""

    @staticmethod
    def create_client(
        host: str,
        port: int,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        password: Optional[str] = None,
        db: int = 0,
        **kwargs: Any
    ) -> redis.Redis:
        """
        Create a Redis client.

        No network traffic happens here; call ``probe`` to verify the server
        is reachable.

        Args:
            host: Redis host
            port: Redis port
            connect_timeout: Socket connect timeout in seconds
            password: Redis password
            db: Database number
            **kwargs: Additional Redis client parameters

        Returns:
            Configured Redis client
        """
        client = redis.Redis(
            host=host,
            port=port,
            password=password,
            db=db,
            decode_responses=True,
            socket_connect_timeout=connect_timeout,
            # a failed call is reported, never silently replayed
            retry=Retry(NoBackoff(), 0),
            **kwargs
        )
        client.set_response_callback("HGETALL", _raw_reply)
        logger.debug("redis.client_created", host=host, port=port, db=db)
        return client

    @staticmethod
    async def probe(client: redis.Redis) -> None:
        """
        Verify the connection with a PING.

        Raises:
            redis.exceptions.RedisError: If the server cannot be reached
            OSError: On socket-level failures
        """
        await client.ping()

    @staticmethod
    async def dispose(client: Optional[redis.Redis]) -> None:
        """Close a client, logging rather than raising on failure."""
        if client is None:
            return
        try:
            await client.aclose()
        except Exception as e:
            logger.warning("redis.close_failed", error=str(e))
