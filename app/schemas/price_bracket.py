from __future__ import annotations

from decimal import Decimal
from pydantic import BaseModel, Field


class PriceBracketIn(BaseModel):
    min_kg: Decimal
    max_kg: Decimal | None = None
    rate: Decimal
    label: str
    is_special: bool = False


class PriceBracketRead(BaseModel):
    min_kg: Decimal
    max_kg: Decimal | None
    rate: Decimal
    label: str
    is_special: bool


class PriceBracketSet(BaseModel):
    route: str
    is_default: bool
    brackets: list[PriceBracketRead] = Field(default_factory=list)
