"""
Object-user directory on top of the key-value store.

Layout:
- ``zgw_user_list``: set of display names (directory membership)
- ``zgw_user_<display_name>``: hash holding ``uid``, ``name`` and every
  extra attribute of one user

Writers serialize through the directory lock. Readers take no lock, so a
listing may observe a half-applied ``add_user`` (member present, hash not yet
written); such members are skipped.
"""

from typing import TYPE_CHECKING, List

from metastore.exceptions import CorruptionError, InvalidArgumentError, StoreIOError
from metastore.infrastructure.logging import get_logger
from metastore.infrastructure.persistence.commands import (
    HashGetAll,
    HashSetFields,
    KeyDelete,
    SetAdd,
    SetMembers,
)
from metastore.infrastructure.persistence.connection import ConnectionManager
from metastore.infrastructure.persistence.error_classifier import (
    format_release_outcome,
    outcome_of_error,
    should_release_lock,
)
from metastore.models.user import RESERVED_FIELDS, User

if TYPE_CHECKING:
    from metastore.infrastructure.concurrency.lock_coordinator import LockCoordinator

logger = get_logger(__name__)

USER_LIST_KEY = "zgw_user_list"
USER_KEY_PREFIX = "zgw_user_"


def user_key(display_name: str) -> str:
    return f"{USER_KEY_PREFIX}{display_name}"


class DirectoryStore:
    """Add and list users of the object-user directory."""

    def __init__(self, connection: ConnectionManager, lock: "LockCoordinator"):
        self.connection = connection
        self.lock = lock

    async def add_user(self, user: User) -> None:
        """
        Add a user under the directory lock.

        Args:
            user: User to add; ``display_name`` must not exist yet

        Raises:
            InvalidArgumentError: ``key_pairs`` uses a reserved field name
            StoreIOError: Transport failure; the lock is left to expire
            CorruptionError: Duplicate user or an error reply from the store
        """
        clashing = sorted(RESERVED_FIELDS.intersection(user.key_pairs))
        if clashing:
            raise InvalidArgumentError(
                f"key_pairs may not use reserved field names: {clashing}",
                context={"display_name": user.display_name},
            )
        if not await self.connection.ensure_healthy():
            raise StoreIOError("Reconnect")

        await self.lock.acquire()

        try:
            added = await self.connection.execute(
                SetAdd(USER_LIST_KEY, user.display_name), "AddUser::SADD"
            )
            if added == 0:
                raise CorruptionError("User Already Exists", context={"display_name": user.display_name})

            # clears a record left behind by an earlier half-written attempt
            await self.connection.execute(KeyDelete(user_key(user.display_name)), "AddUser::DEL")
            await self.connection.execute(
                HashSetFields(user_key(user.display_name), user.to_fields()), "AddUser::HSET"
            )
        except (StoreIOError, CorruptionError) as e:
            if not should_release_lock(outcome_of_error(e), holds_lock=True):
                raise
            raise await self._release_after_failure(e) from e

        await self.lock.release()
        logger.info("directory.user_added", display_name=user.display_name, user_id=user.user_id)

    async def list_users(self) -> List[User]:
        """
        List every user in the directory.

        Best effort snapshot: no lock is taken. Members whose record is empty
        are skipped.

        Returns:
            Users in membership enumeration order (unspecified)

        Raises:
            StoreIOError: Transport failure
            CorruptionError: A record with an odd number of tokens, or an
                error reply from the store; no partial result is returned
        """
        if not await self.connection.ensure_healthy():
            raise StoreIOError("Reconnect")

        members = await self.connection.execute(SetMembers(USER_LIST_KEY), "ListUsers::SMEMBERS")
        if not members:
            return []

        users = []
        for name in members:
            reply = await self.connection.execute(HashGetAll(user_key(name)), "ListUsers::HGETALL")
            tokens = _flatten_record(reply)
            if not tokens:
                logger.debug("directory.record_missing", display_name=name)
                continue
            if len(tokens) % 2 != 0:
                raise CorruptionError(
                    "ListUsers::HGETALL: odd number of elements",
                    context={"display_name": name, "elements": len(tokens)},
                )
            users.append(User.from_tokens(tokens))
        return users

    async def _release_after_failure(self, error: CorruptionError) -> CorruptionError:
        """Release the lock held during a logic failure and fold the result into the error."""
        release_error = None
        try:
            await self.lock.release()
        except (StoreIOError, CorruptionError) as e:
            release_error = e
        message = format_release_outcome(error.message, release_error)
        logger.error("directory.logic_failure", error=message)
        return CorruptionError(message, context=error.context)


def _flatten_record(reply) -> List[str]:
    """HGETALL replies arrive as a flat token list; a mapping is flattened in order."""
    if isinstance(reply, dict):
        tokens = []
        for field, value in reply.items():
            tokens.extend((field, value))
        return tokens
    return list(reply)
