"""
User directory entry model.

A user is stored as a hash keyed by its display name. The two identity fields
are written under the literal field names ``uid`` and ``name``; every other
hash field is a free-form attribute.
"""

from typing import Dict, Iterator, List, Tuple

from pydantic import BaseModel, Field, field_validator

USER_ID_FIELD = "uid"
DISPLAY_NAME_FIELD = "name"
RESERVED_FIELDS = frozenset({USER_ID_FIELD, DISPLAY_NAME_FIELD})


class User(BaseModel):
    """Object-user directory entry."""

    user_id: str = Field(..., description="Opaque identifier, assigned externally")
    display_name: str = Field(..., min_length=1, description="Unique name; storage and membership key")
    key_pairs: Dict[str, str] = Field(default_factory=dict, description="Extra attributes")

    @field_validator("key_pairs")
    @classmethod
    def validate_reserved_keys(cls, v):
        """``uid`` and ``name`` would be read back as the identity fields"""
        clashing = sorted(RESERVED_FIELDS.intersection(v))
        if clashing:
            raise ValueError(f"key_pairs may not use reserved field names: {clashing}")
        return v

    def to_fields(self) -> Dict[str, str]:
        """Flatten into the field/value mapping written to the store."""
        fields = {USER_ID_FIELD: self.user_id, DISPLAY_NAME_FIELD: self.display_name}
        fields.update(self.key_pairs)
        return fields

    @classmethod
    def from_tokens(cls, tokens: List[str]) -> "User":
        """
        Rebuild a user from a flat ``[field, value, field, value, ...]`` list.

        The caller guarantees an even token count. Reserved field names always
        win: they populate the identity fields, never ``key_pairs``.
        """
        user_id = ""
        display_name = ""
        key_pairs: Dict[str, str] = {}
        for field, value in _pairwise(tokens):
            if field == USER_ID_FIELD:
                user_id = value
            elif field == DISPLAY_NAME_FIELD:
                display_name = value
            else:
                key_pairs[field] = value
        # model_construct: a record missing ``name`` is still listed as stored
        return cls.model_construct(user_id=user_id, display_name=display_name, key_pairs=key_pairs)


def _pairwise(tokens: List[str]) -> Iterator[Tuple[str, str]]:
    it = iter(tokens)
    return zip(it, it)
