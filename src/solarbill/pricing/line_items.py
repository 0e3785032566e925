"""Accounting-shaped line items for the invoice sink.

Recurring revenue is booked to the platform fees account and one-off add-ons
to the implementation fees account. The line amounts of a result always add
up to its total_price.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum
from typing import Final

from pydantic import BaseModel, Field

from solarbill.models.result import CalculationResult, ThresholdBucket
from solarbill.models.types import DecimalValue
from solarbill.pricing.money import ONE, ZERO

PLATFORM_FEES_ACCOUNT: Final[str] = "1002"
IMPLEMENTATION_FEES_ACCOUNT: Final[str] = "1000"


class RevenueType(StrEnum):
    ARR = "ARR"
    NRR = "NRR"


ACCOUNT_CODES: Final[dict[RevenueType, str]] = {
    RevenueType.ARR: PLATFORM_FEES_ACCOUNT,
    RevenueType.NRR: IMPLEMENTATION_FEES_ACCOUNT,
}


class InvoiceLineItem(BaseModel):
    """One line of an invoice as handed to the accounting system."""

    description: str = Field(..., min_length=1)
    quantity: DecimalValue = Field(default=ONE)
    unit_amount: DecimalValue
    account_code: str
    revenue_type: RevenueType

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def line_amount(self) -> Decimal:
        return self.quantity * self.unit_amount


def _line(
    description: str,
    amount: Decimal,
    revenue_type: RevenueType = RevenueType.ARR,
    quantity: Decimal = ONE,
) -> InvoiceLineItem:
    return InvoiceLineItem(
        description=description,
        quantity=quantity,
        unit_amount=amount,
        account_code=ACCOUNT_CODES[revenue_type],
        revenue_type=revenue_type,
    )


def _bucket_line(description: str, bucket: ThresholdBucket) -> InvoiceLineItem | None:
    if bucket.cost <= ZERO:
        return None
    return _line(f"{description} ({bucket.site_count} sites, {bucket.mw} MW)", bucket.cost)


def _package_lines(result: CalculationResult) -> list[InvoiceLineItem]:
    lines: list[InvoiceLineItem] = []
    if result.starter_package_cost > ZERO:
        label = "Capped package fee" if result.package_type == "capped" else "Starter package"
        lines.append(_line(f"{label} ({result.invoice_period})", result.starter_package_cost))

    hybrid = result.hybrid_tiered_breakdown
    if hybrid is not None:
        for name, bucket in (("On-grid", hybrid.ongrid), ("Hybrid", hybrid.hybrid)):
            if bucket.cost > ZERO:
                lines.append(
                    _line(f"{name} capacity ({bucket.mw} MW @ {bucket.rate}/MW)", bucket.cost)
                )

    graduated = result.elum_internal_breakdown
    if graduated is not None:
        for tier_slice in graduated.slices:
            if tier_slice.cost > ZERO:
                lines.append(
                    _line(
                        f"Capacity tier {tier_slice.label} "
                        f"({tier_slice.mw_in_tier} MW @ {tier_slice.price_per_mw}/MW)",
                        tier_slice.cost,
                    )
                )

    epm = result.elum_epm_breakdown
    if epm is not None:
        for description, bucket in (
            ("Sites up to threshold", epm.small_sites),
            ("Sites above threshold", epm.large_sites),
            ("Sites on minimum charge", epm.minimum_sites),
        ):
            line = _bucket_line(description, bucket)
            if line is not None:
                lines.append(line)

    for module in result.module_costs:
        if module.cost > ZERO:
            lines.append(
                _line(f"{module.module_name} ({module.mw} MW @ {module.rate}/MW)", module.cost)
            )

    if epm is None and result.minimum_charges > ZERO:
        lines.append(_line("Site minimum charges", result.minimum_charges))

    jubaili = result.elum_jubaili_breakdown
    if jubaili is not None and jubaili.total_cost > ZERO:
        lines.append(
            _line(
                f"Per-site fee ({jubaili.site_count} sites @ {jubaili.per_site_fee})",
                jubaili.total_cost,
            )
        )

    per_site = result.per_site_breakdown
    if per_site is not None:
        if per_site.onboarding:
            lines.append(
                _line(
                    "Site onboarding fee",
                    per_site.onboarding_fee_per_site,
                    quantity=Decimal(per_site.onboarding_count),
                )
            )
        if per_site.annual:
            lines.append(
                _line(
                    "Site annual fee",
                    per_site.annual_fee_per_site,
                    quantity=Decimal(per_site.annual_count),
                )
            )
    return lines


def build_line_items(result: CalculationResult) -> list[InvoiceLineItem]:
    """Turn a result into line items whose amounts sum to result.total_price."""
    lines = _package_lines(result)

    for asset in result.discounted_assets:
        if asset.cost > ZERO:
            lines.append(_line(f"{asset.asset_name or asset.asset_id} (negotiated)", asset.cost))

    if result.minimum_contract_adjustment > ZERO:
        lines.append(_line("Minimum contract value adjustment", result.minimum_contract_adjustment))
    if result.base_pricing_cost > ZERO:
        lines.append(_line("Base platform fee", result.base_pricing_cost))
    if result.retainer_cost > ZERO:
        lines.append(_line("Retainer", result.retainer_cost))

    for addon in result.addon_costs:
        if addon.cost > ZERO:
            revenue_type = RevenueType.ARR if addon.recurring else RevenueType.NRR
            lines.append(_line(addon.addon_name, addon.cost, revenue_type=revenue_type))

    return lines
