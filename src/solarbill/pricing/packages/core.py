"""Core package calculators: starter, pro, custom, elum_portfolio_os, the hybrid_tiered
variants, capped, poc.

All calculators use Decimal arithmetic exclusively. Costs are quantized with
``ctx.money`` when they are written into the breakdown; the assembler only
adds already-quantized figures.
"""

from __future__ import annotations

from decimal import Decimal

from solarbill.models.catalog import ModuleDefinition
from solarbill.models.params import PackageType
from solarbill.models.result import (
    CapacityBucket,
    HybridTieredBreakdown,
    ModuleCost,
    SiteMinimumAsset,
    SiteMinimumPricingBreakdown,
    WarningCode,
)
from solarbill.pricing.catalog import TECHNICAL_MONITORING_MODULE_ID
from solarbill.pricing.errors import ConfigurationError, InputValidationError
from solarbill.pricing.money import ONE, ZERO, percent_of, sum_money
from solarbill.pricing.packages.context import PackageCharges, PricingContext
from solarbill.pricing.packages.registry import (
    PackageCalculatorRegistry,
    PackageCalculatorSpec,
)
from solarbill.pricing.tiers import applicable_discount, resolve_tier

STARTER_DEFAULT_MINIMUM = Decimal("3000")
PRO_DEFAULT_MINIMUM = Decimal("5000")

ONGRID_CUSTOM_PRICING_KEY = "ongrid_per_mwp"
HYBRID_CUSTOM_PRICING_KEY = "hybrid_per_mwp"

NEGOTIATED_RATE_PACKAGES = frozenset({PackageType.CUSTOM, PackageType.ELUM_PORTFOLIO_OS})


def _require_module(ctx: PricingContext, module_id: str) -> ModuleDefinition:
    module = ctx.catalog.get_module(module_id)
    if module is None:
        raise InputValidationError(
            f"Unknown module '{module_id}'",
            package_type=ctx.package_type.value,
            field="selected_modules",
        )
    return module


def module_rate(ctx: PricingContext, module: ModuleDefinition) -> Decimal:
    """Annual price per MW for a module; negotiated-rate packages honour custom_pricing."""
    if ctx.package_type in NEGOTIATED_RATE_PACKAGES and module.id in ctx.params.custom_pricing:
        return ctx.params.custom_pricing[module.id]
    return module.price


def price_modules(
    ctx: PricingContext,
    mw: Decimal,
    exclude: frozenset[str] = frozenset(),
) -> tuple[list[ModuleCost], Decimal, Decimal]:
    """Price the selected modules on a capacity, applying the portfolio discount.

    Formula per module: rate x mw x multiplier x (1 - discount_percent / 100)

    Returns:
        (module costs, discount percent, total discount amount)
    """
    percent, _ = applicable_discount(
        ctx.params.total_mw,
        ctx.params.portfolio_discount_tiers,
        package_type=ctx.package_type.value,
    )
    costs: list[ModuleCost] = []
    discount_amount = ZERO
    for module_id in ctx.params.selected_modules:
        if module_id in exclude:
            continue
        module = _require_module(ctx, module_id)
        rate = module_rate(ctx, module)
        gross = ctx.money(rate * mw * ctx.multiplier)
        cost = ctx.money(gross - percent_of(gross, percent))
        discount_amount += gross - cost
        costs.append(
            ModuleCost(
                module_id=module.id,
                module_name=module.name,
                rate=rate,
                mw=mw,
                cost=cost,
                discount_percent=percent,
            )
        )
    return costs, percent, discount_amount


def _combined_annual_rate(ctx: PricingContext, discount_percent: Decimal) -> Decimal:
    rate = ZERO
    for module_id in ctx.params.selected_modules:
        rate += module_rate(ctx, _require_module(ctx, module_id))
    return rate * (ONE - discount_percent / Decimal("100"))


def per_site_minimum(ctx: PricingContext) -> tuple[Decimal, str | None]:
    """Per-site minimum charge: from tiers keyed on total MW, else the flat charge."""
    tiers = ctx.params.minimum_charge_tiers
    if tiers:
        tier = resolve_tier(
            ctx.params.total_mw,
            tiers,
            field="minimum_charge_tiers",
            package_type=ctx.package_type.value,
        )
        return tier.charge_per_site, tier.display_label("MW")
    return ctx.params.minimum_charge, None


def _site_minimum_enabled(ctx: PricingContext) -> bool:
    params = ctx.params
    return params.enable_site_minimum_pricing and (
        bool(params.minimum_charge_tiers) or params.minimum_charge > ZERO
    )


def _split_site_minimum(
    ctx: PricingContext,
) -> tuple[Decimal, SiteMinimumPricingBreakdown]:
    """Bill each asset on its own; assets costing less than the minimum go on minimum.

    Returns:
        (capacity of the sites above threshold, breakdown)
    """
    minimum, tier_label = per_site_minimum(ctx)
    percent, _ = applicable_discount(
        ctx.params.total_mw,
        ctx.params.portfolio_discount_tiers,
        package_type=ctx.package_type.value,
    )
    combined_rate = _combined_annual_rate(ctx, percent)
    minimum_annual = ctx.annualized_site_charge(minimum)
    minimum_period = ctx.money(minimum_annual * ctx.multiplier)

    lines: list[SiteMinimumAsset] = []
    above_mw = ZERO
    below_mw = ZERO
    above_count = 0
    below_count = 0
    above_cost = ZERO
    for asset in ctx.billable_assets:
        calculated_annual = asset.total_mw * combined_rate
        calculated = ctx.money(calculated_annual * ctx.multiplier)
        on_minimum = calculated_annual < minimum_annual
        if on_minimum:
            below_mw += asset.total_mw
            below_count += 1
        else:
            above_mw += asset.total_mw
            above_count += 1
            above_cost += calculated
        lines.append(
            SiteMinimumAsset(
                asset_id=asset.asset_id,
                asset_name=asset.asset_name,
                mw=asset.total_mw,
                calculated_cost=calculated,
                billed_cost=minimum_period if on_minimum else calculated,
                on_minimum=on_minimum,
            )
        )

    breakdown = SiteMinimumPricingBreakdown(
        minimum_charge_per_site=minimum,
        applied_tier=tier_label,
        sites_above_threshold=above_count,
        sites_below_threshold=below_count,
        above_threshold_mw=above_mw,
        below_threshold_mw=below_mw,
        above_threshold_cost=ctx.money(above_cost),
        below_threshold_cost=ctx.money(minimum_period * below_count),
        assets=lines,
    )
    return above_mw, breakdown


def _price_per_capacity(ctx: PricingContext, floor_annual: Decimal | None) -> PackageCharges:
    """Shared per-capacity rule: modules per MW plus optional site minimums."""
    params = ctx.params
    charges = PackageCharges(floor_annual=floor_annual)

    if _site_minimum_enabled(ctx):
        if ctx.has_asset_breakdown:
            mw, breakdown = _split_site_minimum(ctx)
        else:
            ctx.data_gap(
                WarningCode.DATA_GAP_ASSETS,
                "Site minimum pricing is enabled but no asset breakdown was supplied; "
                "falling back to sites_under_threshold",
                "capabilities.assets",
            )
            minimum, tier_label = per_site_minimum(ctx)
            mw = ctx.billable_mw
            breakdown = SiteMinimumPricingBreakdown(
                minimum_charge_per_site=minimum,
                applied_tier=tier_label,
                sites_below_threshold=params.sites_under_threshold,
                below_threshold_cost=ctx.money(
                    ctx.site_charge(minimum) * params.sites_under_threshold
                ),
                used_aggregate_fallback=True,
            )
        charges.site_minimum_pricing_breakdown = breakdown
        charges.minimum_charges = breakdown.below_threshold_cost
    else:
        mw = ctx.billable_mw
        charges.minimum_charges = ctx.money(
            ctx.site_charge(params.minimum_charge) * params.sites_under_threshold
        )

    module_costs, percent, discount_amount = price_modules(ctx, mw)
    charges.module_costs = module_costs
    charges.total_mw_cost = sum_money(m.cost for m in module_costs)
    charges.portfolio_discount_percent = percent
    charges.portfolio_discount_amount = discount_amount
    return charges


def _starter_calculator(ctx: PricingContext) -> PackageCharges:
    """Flat annual minimum value x multiplier; no module charges."""
    annual = ctx.params.minimum_annual_value
    if annual is None:
        annual = STARTER_DEFAULT_MINIMUM
    return PackageCharges(starter_package_cost=ctx.money(annual * ctx.multiplier))


def _pro_calculator(ctx: PricingContext) -> PackageCharges:
    floor = ctx.params.minimum_annual_value
    return _price_per_capacity(ctx, PRO_DEFAULT_MINIMUM if floor is None else floor)


def _custom_calculator(ctx: PricingContext) -> PackageCharges:
    return _price_per_capacity(ctx, ctx.params.minimum_annual_value)


def _hybrid_rates(ctx: PricingContext) -> tuple[Decimal, Decimal]:
    params = ctx.params
    ongrid = params.ongrid_price_per_mw
    if ongrid is None:
        ongrid = params.custom_pricing.get(ONGRID_CUSTOM_PRICING_KEY)
    hybrid = params.hybrid_price_per_mw
    if hybrid is None:
        hybrid = params.custom_pricing.get(HYBRID_CUSTOM_PRICING_KEY)
    if ongrid is None:
        raise ConfigurationError(
            f"{ctx.package_type.value} package requires an on-grid price per MW",
            package_type=ctx.package_type.value,
            field="ongrid_price_per_mw",
        )
    if hybrid is None:
        raise ConfigurationError(
            f"{ctx.package_type.value} package requires a hybrid price per MW",
            package_type=ctx.package_type.value,
            field="hybrid_price_per_mw",
        )
    return ongrid, hybrid


def _hybrid_tiered_calculator(ctx: PricingContext) -> PackageCharges:
    """On-grid and hybrid capacity at two rates; Technical Monitoring is embedded in both."""
    ongrid_rate, hybrid_rate = _hybrid_rates(ctx)
    caps = ctx.params.capabilities
    used_fallback = False

    if ctx.has_asset_breakdown:
        assets = ctx.billable_assets
        ongrid_mw = sum_money(a.total_mw for a in assets if not a.is_hybrid)
        hybrid_mw = sum_money(a.total_mw for a in assets if a.is_hybrid)
    elif (
        caps is not None
        and caps.ongrid_total_mw is not None
        and caps.hybrid_total_mw is not None
    ):
        ongrid_mw = max(caps.ongrid_total_mw - ctx.excluded_mw, ZERO)
        hybrid_mw = caps.hybrid_total_mw
    else:
        ctx.data_gap(
            WarningCode.DATA_GAP_CAPACITY_SPLIT,
            "No on-grid/hybrid capacity split available; billing all capacity at the "
            "on-grid rate",
            "capabilities.hybrid_total_mw",
        )
        ongrid_mw = ctx.billable_mw
        hybrid_mw = ZERO
        used_fallback = True

    ongrid = CapacityBucket(
        mw=ongrid_mw, rate=ongrid_rate, cost=ctx.money(ongrid_mw * ongrid_rate * ctx.multiplier)
    )
    hybrid = CapacityBucket(
        mw=hybrid_mw, rate=hybrid_rate, cost=ctx.money(hybrid_mw * hybrid_rate * ctx.multiplier)
    )

    module_costs, percent, discount_amount = price_modules(
        ctx,
        ongrid_mw + hybrid_mw,
        exclude=frozenset({TECHNICAL_MONITORING_MODULE_ID}),
    )
    return PackageCharges(
        module_costs=module_costs,
        total_mw_cost=ongrid.cost + hybrid.cost + sum_money(m.cost for m in module_costs),
        portfolio_discount_percent=percent,
        portfolio_discount_amount=discount_amount,
        floor_annual=ctx.params.minimum_annual_value,
        hybrid_tiered_breakdown=HybridTieredBreakdown(
            ongrid=ongrid, hybrid=hybrid, used_fallback=used_fallback
        ),
    )


def _capped_calculator(ctx: PricingContext) -> PackageCharges:
    """Fixed annual fee x multiplier; capacity above max_mw is flagged, not billed."""
    params = ctx.params
    if params.minimum_annual_value is None:
        raise ConfigurationError(
            "capped package requires minimum_annual_value as its fixed fee",
            package_type=ctx.package_type.value,
            field="minimum_annual_value",
        )
    if params.max_mw is not None and params.total_mw > params.max_mw:
        ctx.warn(
            WarningCode.MW_CAP_EXCEEDED,
            f"Managed capacity {params.total_mw} MW exceeds the contract cap of "
            f"{params.max_mw} MW",
            "total_mw",
        )
    return PackageCharges(
        starter_package_cost=ctx.money(params.minimum_annual_value * ctx.multiplier)
    )


def _poc_calculator(ctx: PricingContext) -> PackageCharges:
    """Proof-of-concept contracts are never billed."""
    return PackageCharges()


STARTER_SPEC = PackageCalculatorSpec(
    package_type=PackageType.STARTER,
    version="1.0.0",
    calculator_id="starter_flat_annual_v1",
    fn=_starter_calculator,
    supports_asset_overrides=False,
)

PRO_SPEC = PackageCalculatorSpec(
    package_type=PackageType.PRO,
    version="1.0.0",
    calculator_id="pro_modules_per_mw_v1",
    fn=_pro_calculator,
)

CUSTOM_SPEC = PackageCalculatorSpec(
    package_type=PackageType.CUSTOM,
    version="1.0.0",
    calculator_id="custom_modules_per_mw_v1",
    fn=_custom_calculator,
)

HYBRID_TIERED_SPEC = PackageCalculatorSpec(
    package_type=PackageType.HYBRID_TIERED,
    version="1.0.0",
    calculator_id="hybrid_tiered_two_rate_v1",
    fn=_hybrid_tiered_calculator,
)

HYBRID_TIERED_ASSETGROUPS_SPEC = PackageCalculatorSpec(
    package_type=PackageType.HYBRID_TIERED_ASSETGROUPS,
    version="1.0.0",
    calculator_id="hybrid_tiered_assetgroups_two_rate_v1",
    fn=_hybrid_tiered_calculator,
)

# Custom rates with a pro-style floor; the floor only applies when the contract sets one.
ELUM_PORTFOLIO_OS_SPEC = PackageCalculatorSpec(
    package_type=PackageType.ELUM_PORTFOLIO_OS,
    version="1.0.0",
    calculator_id="elum_portfolio_os_modules_per_mw_v1",
    fn=_custom_calculator,
)

CAPPED_SPEC = PackageCalculatorSpec(
    package_type=PackageType.CAPPED,
    version="1.0.0",
    calculator_id="capped_fixed_fee_v1",
    fn=_capped_calculator,
    supports_asset_overrides=False,
)

POC_SPEC = PackageCalculatorSpec(
    package_type=PackageType.POC,
    version="1.0.0",
    calculator_id="poc_no_billing_v1",
    fn=_poc_calculator,
    supports_asset_overrides=False,
    billable=False,
)

CORE_SPECS = (
    STARTER_SPEC,
    PRO_SPEC,
    CUSTOM_SPEC,
    HYBRID_TIERED_SPEC,
    HYBRID_TIERED_ASSETGROUPS_SPEC,
    ELUM_PORTFOLIO_OS_SPEC,
    CAPPED_SPEC,
    POC_SPEC,
)


def register_core_packages(
    registry: PackageCalculatorRegistry | None = None,
) -> PackageCalculatorRegistry:
    """Register the core package calculators.

    Args:
        registry: Optional registry to use. If None, uses the singleton.

    Returns:
        The registry with core calculators registered.
    """
    if registry is None:
        registry = PackageCalculatorRegistry()

    for spec in CORE_SPECS:
        if registry.get(spec.package_type) is None:
            registry.register(spec)

    return registry
