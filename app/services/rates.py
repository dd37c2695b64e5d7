from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

import redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.models.price_bracket import PriceBracket
from app.repositories.price_bracket_repo import PriceBracketRepository
from app.services.engine.money import to_decimal
from app.services.providers.base import redis_delete, redis_get_json, redis_set_json

logger = get_logger(__name__)

RATE_ROUTES = ("PH_TO_UAE", "UAE_TO_PH")


@dataclass(frozen=True)
class RateBracket:
    min_kg: Decimal
    max_kg: Decimal | None
    rate: Decimal
    label: str
    is_special: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["min_kg"] = str(self.min_kg)
        data["max_kg"] = str(self.max_kg) if self.max_kg is not None else None
        data["rate"] = str(self.rate)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RateBracket":
        return cls(
            min_kg=Decimal(str(data["min_kg"])),
            max_kg=Decimal(str(data["max_kg"])) if data.get("max_kg") is not None else None,
            rate=Decimal(str(data["rate"])),
            label=data["label"],
            is_special=bool(data.get("is_special", False)),
        )


def _bracket(min_kg, max_kg, rate, label, is_special=False) -> RateBracket:
    return RateBracket(
        min_kg=Decimal(min_kg),
        max_kg=Decimal(max_kg) if max_kg is not None else None,
        rate=Decimal(rate),
        label=label,
        is_special=is_special,
    )


DEFAULT_BRACKETS: dict[str, list[RateBracket]] = {
    "PH_TO_UAE": [
        _bracket(1, 15, 39, "1-15 KG"),
        _bracket(16, 29, 38, "16-29 KG"),
        _bracket(30, 69, 36, "30-69 KG"),
        _bracket(70, 199, 34, "70-199 KG"),
        _bracket(200, 299, 31, "200-299 KG"),
        _bracket(300, None, 30, "300+ KG"),
        _bracket(0, None, 29, "SPECIAL RATE", is_special=True),
    ],
    "UAE_TO_PH": [
        _bracket(1, 15, 39, "1-15 KG"),
        _bracket(16, 29, 38, "16-29 KG"),
        _bracket(30, 69, 36, "30-69 KG"),
        _bracket(70, 99, 34, "70-99 KG"),
        _bracket(100, 199, 31, "100-199 KG"),
        _bracket(200, None, 30, "200+ KG"),
        _bracket(0, None, 29, "SPECIAL RATE", is_special=True),
        _bracket(1000, None, 28, "1 TON UP"),
    ],
}


def validate_brackets(raw: list[dict[str, Any]]) -> list[RateBracket]:
    if not raw:
        raise ValidationError("brackets", "brackets must be a non-empty list", rule="required")

    brackets = []
    for index, item in enumerate(raw):
        prefix = f"brackets[{index}]"
        min_kg = to_decimal(item.get("min_kg"), f"{prefix}.min_kg")
        max_kg = to_decimal(item.get("max_kg"), f"{prefix}.max_kg", required=False)
        rate = to_decimal(item.get("rate"), f"{prefix}.rate")
        label = (item.get("label") or "").strip()
        if max_kg is not None and max_kg <= min_kg:
            raise ValidationError(f"{prefix}.max_kg", "max_kg must be empty or greater than min_kg", rule="range")
        if not label:
            raise ValidationError(f"{prefix}.label", "label must be a non-empty string", rule="required")
        is_special = bool(item.get("is_special")) or "SPECIAL" in label.upper()
        brackets.append(RateBracket(min_kg, max_kg, rate, label, is_special))

    if not any(b.max_kg is None for b in brackets):
        raise ValidationError("brackets", "at least one bracket must have no upper bound", rule="open_bracket")
    return brackets


class RateTable:
    """Weight-bracket lookup per rate route.

    Special brackets are offered to operators as a manual rate and never
    picked automatically. The bracket with the highest minimum not above the
    weight wins, so overlapping open-ended brackets such as "1 TON UP" take
    precedence over the general tail.
    """

    def __init__(self, brackets: dict[str, list[RateBracket]]) -> None:
        self._brackets = {
            route: sorted((b for b in items if not b.is_special), key=lambda b: b.min_kg)
            for route, items in brackets.items()
        }

    def brackets_for(self, route_key: str) -> list[RateBracket]:
        return list(self._brackets.get(route_key, []))

    def bracket_for(self, route_key: str, weight: Decimal) -> RateBracket | None:
        candidates = self._brackets.get(route_key)
        if not candidates:
            return None
        eligible = [b for b in candidates if b.min_kg <= weight]
        if not eligible:
            return candidates[0]
        return eligible[-1]

    def rate_for(self, route_key: str, weight: Decimal) -> Decimal | None:
        bracket = self.bracket_for(route_key, weight)
        return bracket.rate if bracket else None


class RateTableProvider:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.settings = get_settings()
        self.repo = PriceBracketRepository(session)

    @staticmethod
    def cache_key(route: str) -> str:
        return f"rates:{route}"

    async def get_brackets(self, route: str) -> tuple[list[RateBracket], bool]:
        """Return the brackets for ``route`` and whether they are the built-in defaults."""
        try:
            cached = await redis_get_json(self.cache_key(route))
        except redis.RedisError:
            logger.warning("rate_cache_unavailable", route=route)
            cached = None
        if cached:
            return [RateBracket.from_dict(item) for item in cached["brackets"]], cached["is_default"]

        rows = await self.repo.list_for_route(route)
        if rows:
            brackets = [
                RateBracket(row.min_kg, row.max_kg, row.rate, row.label, row.is_special) for row in rows
            ]
            is_default = False
        else:
            brackets = list(DEFAULT_BRACKETS.get(route, []))
            is_default = True

        try:
            await redis_set_json(
                self.cache_key(route),
                {"brackets": [b.to_dict() for b in brackets], "is_default": is_default},
                self.settings.rate_table_cache_ttl_seconds,
            )
        except redis.RedisError:
            logger.warning("rate_cache_unavailable", route=route)
        return brackets, is_default

    async def load(self) -> RateTable:
        brackets = {}
        for route in RATE_ROUTES:
            brackets[route], _ = await self.get_brackets(route)
        return RateTable(brackets)

    async def replace(self, route: str, raw: list[dict[str, Any]]) -> list[RateBracket]:
        brackets = validate_brackets(raw)
        await self.repo.replace(
            route,
            [
                PriceBracket(
                    route=route,
                    min_kg=b.min_kg,
                    max_kg=b.max_kg,
                    rate=b.rate,
                    label=b.label,
                    is_special=b.is_special,
                )
                for b in brackets
            ],
        )
        try:
            await redis_delete(self.cache_key(route))
        except redis.RedisError:
            logger.warning("rate_cache_invalidation_failed", route=route)
        logger.info("price_brackets_replaced", route=route, count=len(brackets))
        return brackets
