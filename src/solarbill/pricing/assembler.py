"""Invoice assembler: merges package output and layers into a CalculationResult.

total_price = starter + total_mw_cost + minimum_charges + per-site categories
            + discounted assets + minimum_contract_adjustment
            + base pricing + retainer + add-ons

The contract floor compares ``floor_annual x multiplier`` against the
package's own charges (starter, capacity, minimums, per-site categories and
discounted assets). The shortfall is recorded as a separate adjustment and is
never negative; the computed subtotals stay untouched.

ARR is every recurring figure; NRR is the one-off add-ons. ARR + NRR always
equals total_price.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from solarbill.models.result import AddonCost, CalculationResult, CalculationWarning
from solarbill.pricing.layers import DiscountedAssets, RetainerCharge
from solarbill.pricing.money import ZERO, sum_money
from solarbill.pricing.packages.context import PackageCharges, PricingContext


@dataclass(frozen=True)
class FloorOutcome:
    minimum_contract_value: Decimal | None
    adjustment: Decimal


def floor_base(charges: PackageCharges, discounted_total: Decimal) -> Decimal:
    """Package charges the minimum contract value is compared against."""
    return (
        charges.starter_package_cost
        + charges.total_mw_cost
        + charges.minimum_charges
        + charges.category_cost
        + discounted_total
    )


def apply_contract_floor(
    ctx: PricingContext,
    charges: PackageCharges,
    discounted_total: Decimal,
) -> FloorOutcome:
    """Shortfall between the period's contract floor and the package charges."""
    if charges.floor_annual is None:
        return FloorOutcome(minimum_contract_value=None, adjustment=ctx.money(ZERO))
    floor = ctx.money(charges.floor_annual * ctx.multiplier)
    shortfall = floor - floor_base(charges, discounted_total)
    return FloorOutcome(minimum_contract_value=floor, adjustment=ctx.money(shortfall))


def split_revenue(total_price: Decimal, addon_costs: list[AddonCost]) -> tuple[Decimal, Decimal]:
    """Return (ARR, NRR). NRR is the one-off add-ons; ARR is the remainder."""
    nrr = sum_money(a.cost for a in addon_costs if not a.recurring)
    return total_price - nrr, nrr


def assemble_result(
    ctx: PricingContext,
    charges: PackageCharges,
    addon_costs: list[AddonCost],
    discounted: DiscountedAssets,
    retainer: RetainerCharge,
    base_pricing_cost: Decimal,
    currency: str,
    invoice_period: str,
) -> CalculationResult:
    """Merge every populated category into one immutable result."""
    discounted_total = ctx.money(discounted.total)
    floor = apply_contract_floor(ctx, charges, discounted_total)
    addons_total = sum_money(a.cost for a in addon_costs)

    total_price = ctx.money(
        floor_base(charges, discounted_total)
        + floor.adjustment
        + base_pricing_cost
        + retainer.cost
        + addons_total
    )
    arr, nrr = split_revenue(total_price, addon_costs)

    warnings: list[CalculationWarning] = list(ctx.warnings)
    return CalculationResult(
        package_type=ctx.package_type.value,
        currency=currency,
        module_costs=charges.module_costs,
        addon_costs=addon_costs,
        starter_package_cost=ctx.money(charges.starter_package_cost),
        base_pricing_cost=ctx.money(base_pricing_cost),
        minimum_charges=ctx.money(charges.minimum_charges),
        total_mw_cost=ctx.money(charges.total_mw_cost),
        site_minimum_pricing_breakdown=charges.site_minimum_pricing_breakdown,
        hybrid_tiered_breakdown=charges.hybrid_tiered_breakdown,
        elum_internal_breakdown=charges.elum_internal_breakdown,
        elum_epm_breakdown=charges.elum_epm_breakdown,
        elum_jubaili_breakdown=charges.elum_jubaili_breakdown,
        per_site_breakdown=charges.per_site_breakdown,
        retainer_cost=ctx.money(retainer.cost),
        retainer_calculated_cost=ctx.money(retainer.calculated_cost),
        retainer_minimum_applied=retainer.minimum_applied,
        discounted_assets=discounted.lines,
        discounted_assets_total=discounted_total,
        portfolio_discount_percent=charges.portfolio_discount_percent,
        portfolio_discount_amount=ctx.money(charges.portfolio_discount_amount),
        minimum_contract_value=floor.minimum_contract_value,
        minimum_contract_adjustment=floor.adjustment,
        total_price=total_price,
        arr_amount=ctx.money(arr),
        nrr_amount=ctx.money(nrr),
        invoice_period=invoice_period,
        frequency_multiplier=ctx.multiplier,
        period_months=ctx.period_months,
        warnings=warnings,
    )
