"""Additive layers available to every billable package.

- discounted-asset overrides, carved out of the package's capacity
- retainer hours, floored at the retainer minimum
- base monthly pricing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from solarbill.models.params import AssetPricingType
from solarbill.models.result import DiscountedAssetCost, WarningCode
from solarbill.pricing.errors import InputValidationError
from solarbill.pricing.money import ZERO, sum_money
from solarbill.pricing.packages.context import PricingContext


@dataclass
class DiscountedAssets:
    """Priced overrides plus what the package calculator must leave out."""

    lines: list[DiscountedAssetCost] = field(default_factory=list)
    excluded_asset_ids: frozenset[str] = field(default_factory=frozenset)
    excluded_mw: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return sum_money(line.cost for line in self.lines)


@dataclass(frozen=True)
class RetainerCharge:
    cost: Decimal
    calculated_cost: Decimal
    minimum_applied: bool


def price_discounted_assets(ctx: PricingContext, supports_overrides: bool) -> DiscountedAssets:
    """Bill overridden assets at their negotiated price.

    Formula: annual -> price x multiplier; per_mw -> price x mw x multiplier

    Args:
        ctx: Pricing context.
        supports_overrides: Whether the package bills capacity or sites that
            an override can replace.

    Raises:
        InputValidationError: For a negative price, or an asset whose
            capacity is neither in the snapshot nor on the override.
    """
    params = ctx.params
    if not params.discounted_assets:
        return DiscountedAssets()
    if not supports_overrides:
        ctx.warn(
            WarningCode.OVERRIDE_NOT_APPLICABLE,
            f"{len(params.discounted_assets)} discounted asset override(s) ignored: "
            f"{ctx.package_type.value} does not bill per capacity or per site",
            "discounted_assets",
        )
        return DiscountedAssets()

    lines: list[DiscountedAssetCost] = []
    seen: set[str] = set()
    for override in params.discounted_assets:
        if override.asset_id in seen:
            raise InputValidationError(
                f"Asset '{override.asset_id}' has more than one price override",
                package_type=ctx.package_type.value,
                field="discounted_assets",
            )
        seen.add(override.asset_id)
        if override.price < ZERO:
            raise InputValidationError(
                f"Asset '{override.asset_id}' has negative override price",
                package_type=ctx.package_type.value,
                field="discounted_assets.price",
            )
        asset = params.capabilities.asset_by_id(override.asset_id) if params.capabilities else None
        if asset is not None:
            mw = asset.total_mw
        elif override.mw is not None:
            mw = override.mw
        else:
            raise InputValidationError(
                f"Discounted asset '{override.asset_id}' has no capacity in the snapshot "
                "and none on the override",
                package_type=ctx.package_type.value,
                field="discounted_assets.mw",
            )
        if override.pricing_type == AssetPricingType.PER_MW:
            raw = override.price * mw * ctx.multiplier
        else:
            raw = override.price * ctx.multiplier
        name = override.asset_name or (asset.asset_name if asset is not None else "")
        lines.append(
            DiscountedAssetCost(
                asset_id=override.asset_id,
                asset_name=name,
                pricing_type=override.pricing_type,
                price=override.price,
                mw=mw,
                cost=ctx.money(raw),
                note=override.note,
            )
        )

    return DiscountedAssets(
        lines=lines,
        excluded_asset_ids=frozenset(seen),
        excluded_mw=sum_money(line.mw for line in lines),
    )


def price_retainer(ctx: PricingContext) -> RetainerCharge:
    """Retainer hours x hourly rate, floored at the retainer minimum.

    Retainers are agreed per invoice, so the frequency multiplier does not apply.
    """
    params = ctx.params
    calculated = ctx.money(params.retainer_hours * params.retainer_hourly_rate)
    minimum = ctx.money(params.retainer_minimum_value)
    if minimum > ZERO and calculated < minimum:
        return RetainerCharge(cost=minimum, calculated_cost=calculated, minimum_applied=True)
    return RetainerCharge(cost=calculated, calculated_cost=calculated, minimum_applied=False)


def price_base_monthly(ctx: PricingContext) -> Decimal:
    """Base monthly price x months in the period."""
    return ctx.money(ctx.params.base_monthly_price * Decimal(ctx.period_months))
