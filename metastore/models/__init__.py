"""Domain models for the object-user directory."""

from .user import RESERVED_FIELDS, User, USER_ID_FIELD, DISPLAY_NAME_FIELD

__all__ = ["RESERVED_FIELDS", "User", "USER_ID_FIELD", "DISPLAY_NAME_FIELD"]
