"""Tests for the User model and its stored field layout."""

import pytest
from pydantic import ValidationError

from metastore.models import User


def test_to_fields_puts_identity_first():
    user = User(user_id="u-1", display_name="alice", key_pairs={"quota": "5G"})
    assert list(user.to_fields().items()) == [("uid", "u-1"), ("name", "alice"), ("quota", "5G")]


def test_from_tokens():
    user = User.from_tokens(["quota", "5G", "name", "alice", "uid", "u-1"])
    assert user == User(user_id="u-1", display_name="alice", key_pairs={"quota": "5G"})


def test_from_tokens_without_extra_attributes():
    user = User.from_tokens(["uid", "u-1", "name", "alice"])
    assert user.key_pairs == {}


@pytest.mark.parametrize("reserved", ["uid", "name"])
def test_reserved_key_pairs_rejected(reserved):
    with pytest.raises(ValidationError, match="reserved"):
        User(user_id="u-1", display_name="alice", key_pairs={reserved: "x"})


def test_display_name_required():
    with pytest.raises(ValidationError):
        User(user_id="u-1", display_name="")
