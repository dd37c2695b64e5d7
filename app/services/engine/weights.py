from __future__ import annotations

from typing import Any

from app.core.errors import ValidationError
from app.models.enums import WeightBasis
from app.services.engine.money import to_decimal
from app.services.engine.types import WeightResult


def weight_basis(actual, volumetric) -> WeightBasis:
    return WeightBasis.ACTUAL if actual >= volumetric else WeightBasis.VOLUMETRIC


def resolve_weight(actual_weight: Any, volumetric_weight: Any, override: Any = None) -> WeightResult:
    """Derive the billing weight from the raw scale and volumetric weights.

    The basis is always taken from the raw comparison; a manual override only
    replaces the chargeable weight and must be strictly positive.
    """
    actual = to_decimal(actual_weight, "actual_weight")
    volumetric = to_decimal(volumetric_weight, "volumetric_weight")
    basis = weight_basis(actual, volumetric)

    manual = to_decimal(override, "total_kg", required=False)
    if manual is not None:
        if manual <= 0:
            raise ValidationError("total_kg", "total_kg override must be greater than 0", rule="positive")
        return WeightResult(
            actual_weight=actual,
            volumetric_weight=volumetric,
            chargeable_weight=manual,
            weight_basis=basis,
            overridden=True,
        )

    return WeightResult(
        actual_weight=actual,
        volumetric_weight=volumetric,
        chargeable_weight=max(actual, volumetric),
        weight_basis=basis,
    )
