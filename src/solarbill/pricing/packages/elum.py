"""Elum package calculators: graduated MW, threshold two-rate, per-site MW-tiered fee."""

from __future__ import annotations

from decimal import Decimal

from solarbill.models.params import PackageType
from solarbill.models.result import (
    ElumEpmBreakdown,
    ElumInternalBreakdown,
    ElumJubailiBreakdown,
    GraduatedSlice,
    ThresholdBucket,
    WarningCode,
)
from solarbill.pricing.errors import ConfigurationError
from solarbill.pricing.money import KWP_PER_MW, ZERO, sum_money
from solarbill.pricing.packages.context import PackageCharges, PricingContext
from solarbill.pricing.packages.core import per_site_minimum
from solarbill.pricing.packages.registry import (
    PackageCalculatorRegistry,
    PackageCalculatorSpec,
)
from solarbill.pricing.tiers import resolve_tier, split_graduated

JUBAILI_DEFAULT_FEE_PER_SITE = Decimal("500")


def _elum_internal_calculator(ctx: PricingContext) -> PackageCharges:
    """Cumulative graduated tiers on total capacity.

    Formula: sum over tiers of mw_in_tier x price_per_mw x multiplier
    """
    tiers = ctx.params.graduated_mw_tiers
    if not tiers:
        raise ConfigurationError(
            "elum_internal package requires graduated_mw_tiers",
            package_type=ctx.package_type.value,
            field="graduated_mw_tiers",
        )
    total_mw = ctx.billable_mw
    slices: list[GraduatedSlice] = []
    for tier, mw_in_tier in split_graduated(
        total_mw, tiers, package_type=ctx.package_type.value
    ):
        slices.append(
            GraduatedSlice(
                label=tier.display_label("MW"),
                min_mw=tier.min_quantity,
                max_mw=tier.max_quantity,
                mw_in_tier=mw_in_tier,
                price_per_mw=tier.price_per_mw,
                cost=ctx.money(mw_in_tier * tier.price_per_mw * ctx.multiplier),
            )
        )
    total_cost = sum_money(s.cost for s in slices)
    return PackageCharges(
        total_mw_cost=total_cost,
        floor_annual=ctx.params.minimum_annual_value,
        elum_internal_breakdown=ElumInternalBreakdown(
            total_mw=total_mw, slices=slices, total_cost=total_cost
        ),
    )


def _bucket(
    ctx: PricingContext, asset_ids: list[str], mw: Decimal, rate: Decimal
) -> ThresholdBucket:
    return ThresholdBucket(
        site_count=len(asset_ids),
        mw=mw,
        rate=rate,
        cost=ctx.money(mw * rate * ctx.multiplier),
        asset_ids=asset_ids,
    )


def _elum_epm_calculator(ctx: PricingContext) -> PackageCharges:
    """Threshold two-rate pricing with a per-site minimum.

    Assets at or below the kWp threshold are small sites billed at the
    below-threshold rate; larger sites at the above-threshold rate. An asset
    whose cost is below the per-site minimum is billed at the minimum instead
    and appears only in the minimum bucket.
    """
    params = ctx.params
    threshold = params.site_size_threshold_kwp
    small_rate = params.below_threshold_price_per_mw
    large_rate = params.above_threshold_price_per_mw
    minimum, _ = per_site_minimum(ctx)
    minimum_annual = ctx.annualized_site_charge(minimum)

    if not ctx.has_asset_breakdown:
        ctx.data_gap(
            WarningCode.DATA_GAP_ASSETS,
            "No asset breakdown supplied; billing total capacity at the above-threshold rate",
            "capabilities.assets",
        )
        large = _bucket(ctx, [], ctx.billable_mw, large_rate)
        small = _bucket(ctx, [], ZERO, small_rate)
        on_minimum = ThresholdBucket(rate=minimum)
        used_fallback = True
    else:
        small_ids: list[str] = []
        large_ids: list[str] = []
        minimum_ids: list[str] = []
        small_mw = ZERO
        large_mw = ZERO
        minimum_mw = ZERO
        for asset in ctx.billable_assets:
            is_small = asset.capacity_kwp <= threshold
            rate = small_rate if is_small else large_rate
            if minimum_annual > ZERO and asset.total_mw * rate < minimum_annual:
                minimum_ids.append(asset.asset_id)
                minimum_mw += asset.total_mw
            elif is_small:
                small_ids.append(asset.asset_id)
                small_mw += asset.total_mw
            else:
                large_ids.append(asset.asset_id)
                large_mw += asset.total_mw
        small = _bucket(ctx, small_ids, small_mw, small_rate)
        large = _bucket(ctx, large_ids, large_mw, large_rate)
        on_minimum = ThresholdBucket(
            site_count=len(minimum_ids),
            mw=minimum_mw,
            rate=minimum,
            cost=ctx.money(ctx.site_charge(minimum) * len(minimum_ids)),
            asset_ids=minimum_ids,
        )
        used_fallback = False

    rate_cost = small.cost + large.cost
    return PackageCharges(
        total_mw_cost=rate_cost,
        minimum_charges=on_minimum.cost,
        floor_annual=params.minimum_annual_value,
        elum_epm_breakdown=ElumEpmBreakdown(
            threshold_kwp=threshold,
            small_sites=small,
            large_sites=large,
            minimum_sites=on_minimum,
            minimum_charge_per_site=minimum,
            total_cost=rate_cost + on_minimum.cost,
            used_aggregate_fallback=used_fallback,
        ),
    )


def _jubaili_site_count(ctx: PricingContext) -> int:
    caps = ctx.params.capabilities
    if caps is not None and caps.site_count is not None:
        count = caps.site_count
    elif ctx.has_asset_breakdown:
        count = len(ctx.params.assets)
    else:
        ctx.data_gap(
            WarningCode.DATA_GAP_SITE_COUNT,
            "No site count available; no per-site fees billed",
            "capabilities.site_count",
        )
        return 0
    return max(count - len(ctx.excluded_asset_ids), 0)


def _elum_jubaili_calculator(ctx: PricingContext) -> PackageCharges:
    """Single per-site fee resolved from tiers keyed on total portfolio MW.

    Formula: site_count x per_site_fee x multiplier
    """
    params = ctx.params
    applied_tier: str | None = None
    if params.per_site_fee_tiers:
        tier = resolve_tier(
            params.total_mw,
            params.per_site_fee_tiers,
            field="per_site_fee_tiers",
            package_type=ctx.package_type.value,
        )
        fee = tier.per_site_fee
        applied_tier = tier.display_label("MW")
    elif "annual_fee_per_site" in params.model_fields_set:
        fee = params.annual_fee_per_site
    else:
        fee = JUBAILI_DEFAULT_FEE_PER_SITE

    site_count = _jubaili_site_count(ctx)
    return PackageCharges(
        floor_annual=params.minimum_annual_value,
        elum_jubaili_breakdown=ElumJubailiBreakdown(
            site_count=site_count,
            per_site_fee=fee,
            applied_tier=applied_tier,
            total_cost=ctx.money(fee * site_count * ctx.multiplier),
        ),
    )


ELUM_INTERNAL_SPEC = PackageCalculatorSpec(
    package_type=PackageType.ELUM_INTERNAL,
    version="1.0.0",
    calculator_id="elum_internal_graduated_mw_v1",
    fn=_elum_internal_calculator,
)

ELUM_EPM_SPEC = PackageCalculatorSpec(
    package_type=PackageType.ELUM_EPM,
    version="1.0.0",
    calculator_id="elum_epm_threshold_two_rate_v1",
    fn=_elum_epm_calculator,
)

ELUM_JUBAILI_SPEC = PackageCalculatorSpec(
    package_type=PackageType.ELUM_JUBAILI,
    version="1.0.0",
    calculator_id="elum_jubaili_per_site_mw_tiered_v1",
    fn=_elum_jubaili_calculator,
)

ELUM_SPECS = (ELUM_INTERNAL_SPEC, ELUM_EPM_SPEC, ELUM_JUBAILI_SPEC)


def register_elum_packages(
    registry: PackageCalculatorRegistry | None = None,
) -> PackageCalculatorRegistry:
    """Register the Elum package calculators."""
    if registry is None:
        registry = PackageCalculatorRegistry()

    for spec in ELUM_SPECS:
        if registry.get(spec.package_type) is None:
            registry.register(spec)

    return registry
