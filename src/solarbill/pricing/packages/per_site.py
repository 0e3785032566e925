"""Per-site package: onboarding fee plus annual renewal fee per site.

Fees are charged per event, so the frequency multiplier does not apply. A
site being onboarded is always also due its first annual fee on the same
invoice.
"""

from __future__ import annotations

from solarbill.models.params import PackageType
from solarbill.models.result import PerSiteBreakdown, PerSiteLine
from solarbill.pricing.money import sum_money
from solarbill.pricing.packages.context import PackageCharges, PricingContext
from solarbill.pricing.packages.registry import (
    PackageCalculatorRegistry,
    PackageCalculatorSpec,
)


def _per_site_calculator(ctx: PricingContext) -> PackageCharges:
    params = ctx.params
    onboarding_fee = ctx.money(params.onboarding_fee_per_site)
    annual_fee = ctx.money(params.annual_fee_per_site)

    onboarding: list[PerSiteLine] = []
    annual: list[PerSiteLine] = []
    for site in params.sites_to_bill:
        if site.asset_id in ctx.excluded_asset_ids:
            continue
        if site.needs_onboarding:
            onboarding.append(
                PerSiteLine(asset_id=site.asset_id, asset_name=site.asset_name, fee=onboarding_fee)
            )
        if site.is_due_for_annual(params.invoice_date):
            annual.append(
                PerSiteLine(asset_id=site.asset_id, asset_name=site.asset_name, fee=annual_fee)
            )

    onboarding_total = sum_money(line.fee for line in onboarding)
    annual_total = sum_money(line.fee for line in annual)
    return PackageCharges(
        per_site_breakdown=PerSiteBreakdown(
            onboarding_fee_per_site=onboarding_fee,
            annual_fee_per_site=annual_fee,
            onboarding=onboarding,
            annual=annual,
            onboarding_total=ctx.money(onboarding_total),
            annual_total=ctx.money(annual_total),
            total_cost=ctx.money(onboarding_total + annual_total),
        ),
    )


PER_SITE_SPEC = PackageCalculatorSpec(
    package_type=PackageType.PER_SITE,
    version="1.0.0",
    calculator_id="per_site_onboarding_annual_v1",
    fn=_per_site_calculator,
)


def register_per_site_packages(
    registry: PackageCalculatorRegistry | None = None,
) -> PackageCalculatorRegistry:
    """Register the per-site package calculator."""
    if registry is None:
        registry = PackageCalculatorRegistry()
    if registry.get(PER_SITE_SPEC.package_type) is None:
        registry.register(PER_SITE_SPEC)
    return registry
