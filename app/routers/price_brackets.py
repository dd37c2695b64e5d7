from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.core.deps import get_db_session
from app.schemas.price_bracket import PriceBracketIn, PriceBracketRead, PriceBracketSet
from app.services.rates import RATE_ROUTES, RateTableProvider

router = APIRouter(prefix="/price-brackets", tags=["price-brackets"])


def _route(route: str) -> str:
    value = route.strip().upper()
    if value not in RATE_ROUTES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown rate route {route}")
    return value


@router.get("/{route}", response_model=PriceBracketSet)
async def get_price_brackets(route: str, session=Depends(get_db_session)):
    route = _route(route)
    brackets, is_default = await RateTableProvider(session).get_brackets(route)
    return PriceBracketSet(
        route=route,
        is_default=is_default,
        brackets=[PriceBracketRead(**b.to_dict()) for b in brackets],
    )


@router.put("/{route}", response_model=PriceBracketSet)
async def replace_price_brackets(route: str, payload: list[PriceBracketIn], session=Depends(get_db_session)):
    route = _route(route)
    brackets = await RateTableProvider(session).replace(route, [item.model_dump() for item in payload])
    return PriceBracketSet(
        route=route,
        is_default=False,
        brackets=[PriceBracketRead(**b.to_dict()) for b in brackets],
    )
