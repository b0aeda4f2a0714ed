"""
Classification of backing-store outcomes.

Every call result is sorted into one of three outcomes at the call site:

- SUCCESS: proceed.
- TRANSIENT_IO: no response or a connectivity-level failure. The connection
  is marked unhealthy and the caller gets a ``StoreIOError``.
- LOGIC_OR_CORRUPTION: the store answered with an error or with a reply of
  the wrong shape. The caller gets a ``CorruptionError``; when the lock was
  held, it is released first and the release outcome is appended to the
  message.

The functions here are pure. Only ``ConnectionManager`` carries state.
"""

import asyncio
from enum import Enum
from typing import Any, Optional

from redis.exceptions import (
    BusyLoadingError,
    ConnectionError as RedisConnectionError,
    InvalidResponse,
    TimeoutError as RedisTimeoutError,
)

from metastore.exceptions import StoreIOError, describe
from metastore.infrastructure.persistence.commands import ReplyShape


class Outcome(str, Enum):
    SUCCESS = "success"
    TRANSIENT_IO = "transient_io"
    LOGIC_OR_CORRUPTION = "logic_or_corruption"


_TRANSIENT_ERRORS = (
    RedisConnectionError,
    RedisTimeoutError,
    BusyLoadingError,
    InvalidResponse,
    OSError,
    asyncio.TimeoutError,
)


def classify_exception(exc: BaseException) -> Outcome:
    """Map an exception raised by a store call to an outcome."""
    # BusyLoadingError subclasses ConnectionError, InvalidResponse is a protocol failure
    if isinstance(exc, _TRANSIENT_ERRORS):
        return Outcome.TRANSIENT_IO
    # ResponseError and the rest: the server answered, but not acceptably
    return Outcome.LOGIC_OR_CORRUPTION


def classify_reply(reply: Any, expected: ReplyShape) -> Outcome:
    """Map a reply that came back without an exception to an outcome."""
    if reply is None:
        if expected in (ReplyShape.OPTIONAL_STATUS, ReplyShape.OPTIONAL_BULK):
            return Outcome.SUCCESS
        return Outcome.TRANSIENT_IO

    if isinstance(reply, Exception):
        # pipelines hand back error replies instead of raising them
        return classify_exception(reply)

    if expected in (ReplyShape.STATUS, ReplyShape.OPTIONAL_STATUS):
        ok = isinstance(reply, (bool, str, bytes))
    elif expected is ReplyShape.INTEGER:
        ok = isinstance(reply, int) and not isinstance(reply, bool)
    elif expected is ReplyShape.ARRAY:
        ok = isinstance(reply, (list, tuple, set, dict))
    else:
        ok = isinstance(reply, (str, bytes))
    return Outcome.SUCCESS if ok else Outcome.LOGIC_OR_CORRUPTION


def should_release_lock(outcome: Outcome, holds_lock: bool) -> bool:
    """Only logic failures release a held lock.

    After a transport failure the connection is already gone, so a release
    call would fail too; the lease expires the lock instead.
    """
    return holds_lock and outcome is Outcome.LOGIC_OR_CORRUPTION


def format_release_outcome(message: str, release_error: Optional[BaseException]) -> str:
    """Append the outcome of a release attempted while handling a failure."""
    return f"{message}, UnLock ret: {describe(release_error)}"


def outcome_of_error(error: BaseException) -> Outcome:
    """Outcome carried by an error already raised from a store call."""
    if isinstance(error, StoreIOError):
        return Outcome.TRANSIENT_IO
    return Outcome.LOGIC_OR_CORRUPTION
