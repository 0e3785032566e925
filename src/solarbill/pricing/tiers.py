"""Tier and discount resolvers.

Pure lookups over ordered tier tables. Tables are validated on every use so
that a malformed contract table aborts the calculation with a
ConfigurationError naming the field, instead of resolving to a guess.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from typing import TypeVar

from solarbill.models.tiers import DiscountTier, GraduatedMWTier, Tier
from solarbill.pricing.errors import ConfigurationError, InputValidationError
from solarbill.pricing.money import ZERO

T = TypeVar("T", bound=Tier)


def validate_tiers(
    tiers: Sequence[Tier],
    field: str = "tiers",
    package_type: str | None = None,
) -> None:
    """Validate a tier table.

    Rules:
    - at least one tier
    - non-negative minima in strictly ascending order
    - max_quantity greater than min_quantity where set
    - no overlap: only the last tier may be unbounded, and every max is at
      or below the next tier's min

    Raises:
        ConfigurationError: If any rule is violated.
    """
    if not tiers:
        raise ConfigurationError(
            f"Tier table '{field}' is empty", package_type=package_type, field=field
        )
    previous: Tier | None = None
    for index, tier in enumerate(tiers):
        if tier.min_quantity < ZERO:
            raise ConfigurationError(
                f"Tier {index} of '{field}' has negative min_quantity {tier.min_quantity}",
                package_type=package_type,
                field=field,
            )
        if tier.max_quantity is not None and tier.max_quantity <= tier.min_quantity:
            raise ConfigurationError(
                f"Tier {index} of '{field}' has max_quantity {tier.max_quantity} "
                f"not above min_quantity {tier.min_quantity}",
                package_type=package_type,
                field=field,
            )
        if previous is not None:
            if tier.min_quantity <= previous.min_quantity:
                raise ConfigurationError(
                    f"Tiers of '{field}' are not in ascending order at index {index}",
                    package_type=package_type,
                    field=field,
                )
            if previous.max_quantity is None:
                raise ConfigurationError(
                    f"Unbounded tier at index {index - 1} of '{field}' is not the last tier",
                    package_type=package_type,
                    field=field,
                )
            if previous.max_quantity > tier.min_quantity:
                raise ConfigurationError(
                    f"Tiers {index - 1} and {index} of '{field}' overlap",
                    package_type=package_type,
                    field=field,
                )
        previous = tier


def resolve_tier(
    quantity: Decimal,
    tiers: Sequence[T],
    field: str = "tiers",
    package_type: str | None = None,
) -> T:
    """Return the tier applying to a quantity.

    The tier whose ``[min, max)`` interval contains the quantity wins. A
    quantity below the first minimum clamps to the first tier; a quantity
    above every finite maximum (or inside a gap) resolves to the closest
    tier below it.

    Raises:
        ConfigurationError: If the table is malformed.
    """
    validate_tiers(tiers, field=field, package_type=package_type)
    selected = tiers[0]
    for tier in tiers:
        if tier.min_quantity <= quantity:
            selected = tier
        else:
            break
    return selected


def split_graduated(
    total: Decimal,
    tiers: Sequence[GraduatedMWTier],
    field: str = "graduated_mw_tiers",
    package_type: str | None = None,
) -> list[tuple[GraduatedMWTier, Decimal]]:
    """Split a capacity across cumulative tiers.

    Every tier is returned with the MW falling inside it (possibly zero). The
    slices always sum to ``total`` exactly.

    Raises:
        ConfigurationError: If the table does not start at 0, has gaps, or
            does not end with an unbounded tier.
        InputValidationError: If total is negative.
    """
    if total < ZERO:
        raise InputValidationError(
            f"Cannot split negative capacity {total}", package_type=package_type, field="total_mw"
        )
    validate_tiers(tiers, field=field, package_type=package_type)
    if tiers[0].min_quantity != ZERO:
        raise ConfigurationError(
            f"Graduated tiers of '{field}' must start at 0, got {tiers[0].min_quantity}",
            package_type=package_type,
            field=field,
        )
    for index in range(1, len(tiers)):
        if tiers[index - 1].max_quantity != tiers[index].min_quantity:
            raise ConfigurationError(
                f"Graduated tiers of '{field}' have a gap before index {index}",
                package_type=package_type,
                field=field,
            )
    if not tiers[-1].is_unbounded:
        raise ConfigurationError(
            f"Last graduated tier of '{field}' must be unbounded",
            package_type=package_type,
            field=field,
        )

    slices: list[tuple[GraduatedMWTier, Decimal]] = []
    for tier in tiers:
        upper = total if tier.max_quantity is None else min(total, tier.max_quantity)
        mw_in_tier = upper - tier.min_quantity
        slices.append((tier, mw_in_tier if mw_in_tier > ZERO else ZERO))
    return slices


def applicable_discount(
    total_mw: Decimal,
    tiers: Sequence[DiscountTier],
    field: str = "portfolio_discount_tiers",
    package_type: str | None = None,
) -> tuple[Decimal, DiscountTier | None]:
    """Portfolio discount percentage keyed on aggregate managed capacity.

    Returns:
        (discount_percent, tier); (0, None) when no table is configured.

    Raises:
        ConfigurationError: If the table is malformed or a percentage is
            outside 0-100.
    """
    if not tiers:
        return ZERO, None
    tier = resolve_tier(total_mw, tiers, field=field, package_type=package_type)
    if not ZERO <= tier.discount_percent <= Decimal("100"):
        raise ConfigurationError(
            f"Discount percent {tier.discount_percent} of '{field}' is outside 0-100",
            package_type=package_type,
            field=field,
        )
    return tier.discount_percent, tier
