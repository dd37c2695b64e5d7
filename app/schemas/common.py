from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

ItemT = TypeVar("ItemT")


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class Page(BaseModel, Generic[ItemT]):
    """One page of a filtered listing; ``total`` counts all matches, not just this page."""

    items: list[ItemT]
    total: int
    limit: int
    offset: int
