"""Shared request-body shapes and the JSON naming convention.

Field names are snake_case in Python and camelCase on the wire, with the
``id`` and ``url`` parts upper-cased: account_id → accountID,
image_url → imageURL, created_at → createdAt.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

_UPPER_PARTS = {"id", "url"}

# Largest key a signed 64-bit INTEGER column can hold
MAX_KEY = 2**63 - 1

Key = Annotated[int, Field(ge=1, le=MAX_KEY)]


def to_json_name(field: str) -> str:
    head, *rest = field.split("_")
    return head + "".join(p.upper() if p in _UPPER_PARTS else p.capitalize() for p in rest)


class JsonModel(BaseModel):
    """Base for every API schema; accepts both the wire and Python names."""

    model_config = ConfigDict(alias_generator=to_json_name, populate_by_name=True)


class IdsRequest(JsonModel):
    ids: list[Key] = Field(..., min_length=1)
