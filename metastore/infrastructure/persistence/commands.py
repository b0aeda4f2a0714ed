"""
Typed key-value store requests.

One frozen dataclass per backing-store operation. Each request renders the
exact argument tuple handed to ``execute_command``; keys and values always
travel as separate protocol arguments, so a value can never be parsed as part
of the command.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple


class ReplyShape(Enum):
    """Reply types a request accepts."""
    STATUS = "status"
    OPTIONAL_STATUS = "optional_status"
    INTEGER = "integer"
    ARRAY = "array"
    OPTIONAL_BULK = "optional_bulk"


# KEYS[1] = lock key, ARGV[1] = caller identity
COMPARE_AND_DELETE_SCRIPT = """\
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class KVRequest(ABC):
    """Base class for typed requests."""

    command: str = ""
    expected: ReplyShape = ReplyShape.STATUS

    @abstractmethod
    def args(self) -> Tuple[Any, ...]:
        """Full argument tuple for ``execute_command``."""

    @property
    def name(self) -> str:
        return self.command


@dataclass(frozen=True)
class SetIfAbsent(KVRequest):
    """SET key value NX PX lease_ms"""
    key: str
    value: str
    lease_ms: int

    command = "SET"
    expected = ReplyShape.OPTIONAL_STATUS

    def args(self):
        return ("SET", self.key, self.value, "NX", "PX", int(self.lease_ms))


@dataclass(frozen=True)
class CompareAndDelete(KVRequest):
    """Delete ``key`` only while it still holds ``expected``; replies 1 or 0."""
    key: str
    expected_value: str

    command = "EVAL"
    expected = ReplyShape.INTEGER

    def args(self):
        return ("EVAL", COMPARE_AND_DELETE_SCRIPT, 1, self.key, self.expected_value)


@dataclass(frozen=True)
class SetAdd(KVRequest):
    key: str
    member: str

    command = "SADD"
    expected = ReplyShape.INTEGER

    def args(self):
        return ("SADD", self.key, self.member)


@dataclass(frozen=True)
class SetMembers(KVRequest):
    key: str

    command = "SMEMBERS"
    expected = ReplyShape.ARRAY

    def args(self):
        return ("SMEMBERS", self.key)


@dataclass(frozen=True)
class HashSetFields(KVRequest):
    """HSET key f1 v1 f2 v2 ..., fields written in mapping order"""
    key: str
    fields: Dict[str, str] = field(default_factory=dict)

    command = "HSET"
    expected = ReplyShape.INTEGER

    def __post_init__(self):
        if not self.fields:
            raise ValueError("HSET needs at least one field")

    def args(self):
        flat = []
        for name, value in self.fields.items():
            flat.extend((name, value))
        return ("HSET", self.key, *flat)


@dataclass(frozen=True)
class HashGetAll(KVRequest):
    key: str

    command = "HGETALL"
    expected = ReplyShape.ARRAY

    def args(self):
        return ("HGETALL", self.key)


@dataclass(frozen=True)
class KeyDelete(KVRequest):
    key: str

    command = "DEL"
    expected = ReplyShape.INTEGER

    def args(self):
        return ("DEL", self.key)


@dataclass(frozen=True)
class KeyGet(KVRequest):
    key: str

    command = "GET"
    expected = ReplyShape.OPTIONAL_BULK

    def args(self):
        return ("GET", self.key)
