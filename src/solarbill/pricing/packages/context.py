"""Shared per-calculation state handed to every package calculator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

from solarbill.models.catalog import PricingCatalog
from solarbill.models.params import (
    AssetCapability,
    CalculationParams,
    PackageType,
    SiteChargeFrequency,
)
from solarbill.models.result import (
    CalculationWarning,
    ElumEpmBreakdown,
    ElumInternalBreakdown,
    ElumJubailiBreakdown,
    HybridTieredBreakdown,
    ModuleCost,
    PerSiteBreakdown,
    SiteMinimumPricingBreakdown,
    WarningCode,
)
from solarbill.pricing.errors import DataGapError
from solarbill.pricing.money import MONTHS_PER_YEAR, ZERO, clamp_non_negative, to_money

logger = logging.getLogger(__name__)


@dataclass
class PricingContext:
    """Inputs and derived figures for one calculation.

    Attributes:
        multiplier: Effective multiplier applied to annualized rates.
        period_months: Whole months covered by the invoice.
        excluded_asset_ids: Assets billed through discounted-asset overrides;
            package calculators must not count them again.
        excluded_mw: Capacity of the excluded assets.
        strict_data: Raise DataGapError instead of recording a warning.
    """

    params: CalculationParams
    catalog: PricingCatalog
    package_type: PackageType
    multiplier: Decimal
    period_months: int
    precision: int = 2
    strict_data: bool = False
    excluded_asset_ids: frozenset[str] = field(default_factory=frozenset)
    excluded_mw: Decimal = ZERO
    warnings: list[CalculationWarning] = field(default_factory=list)

    def money(self, value: Decimal) -> Decimal:
        return to_money(value, self.precision)

    def warn(self, code: WarningCode, message: str, field_name: str | None = None) -> None:
        """Record a warning on the result and log it."""
        logger.warning(
            "%s package_type=%s field=%s: %s",
            code.value,
            self.package_type.value,
            field_name,
            message,
        )
        self.warnings.append(
            CalculationWarning(
                code=code,
                message=message,
                package_type=self.package_type.value,
                field=field_name,
            )
        )

    def data_gap(self, code: WarningCode, message: str, field_name: str) -> None:
        """Handle missing capability data: fail in strict mode, otherwise warn and fall back."""
        if self.strict_data:
            raise DataGapError(message, package_type=self.package_type.value, field=field_name)
        self.warn(code, message, field_name)

    @property
    def billable_assets(self) -> list[AssetCapability]:
        return [a for a in self.params.assets if a.asset_id not in self.excluded_asset_ids]

    @property
    def has_asset_breakdown(self) -> bool:
        return bool(self.params.assets)

    @property
    def billable_mw(self) -> Decimal:
        """Total capacity minus capacity billed through asset overrides."""
        return clamp_non_negative(self.params.total_mw - self.excluded_mw)

    def annualized_site_charge(self, charge: Decimal) -> Decimal:
        """Per-site charge expressed per year, honouring site_charge_frequency."""
        if self.params.site_charge_frequency == SiteChargeFrequency.MONTHLY:
            return charge * MONTHS_PER_YEAR
        return charge

    def site_charge(self, charge: Decimal) -> Decimal:
        """Per-site charge for this invoice period (unquantized)."""
        return self.annualized_site_charge(charge) * self.multiplier


@dataclass
class PackageCharges:
    """Partial breakdown produced by a package calculator.

    ``floor_annual`` is the annual minimum contract value the assembler
    compares against; None means the package has no contract floor.
    """

    module_costs: list[ModuleCost] = field(default_factory=list)
    starter_package_cost: Decimal = ZERO
    total_mw_cost: Decimal = ZERO
    minimum_charges: Decimal = ZERO
    portfolio_discount_percent: Decimal = ZERO
    portfolio_discount_amount: Decimal = ZERO
    floor_annual: Decimal | None = None
    site_minimum_pricing_breakdown: SiteMinimumPricingBreakdown | None = None
    hybrid_tiered_breakdown: HybridTieredBreakdown | None = None
    elum_internal_breakdown: ElumInternalBreakdown | None = None
    elum_epm_breakdown: ElumEpmBreakdown | None = None
    elum_jubaili_breakdown: ElumJubailiBreakdown | None = None
    per_site_breakdown: PerSiteBreakdown | None = None

    @property
    def category_cost(self) -> Decimal:
        """Package costs reported only through a breakdown (per-site fees)."""
        total = ZERO
        if self.elum_jubaili_breakdown is not None:
            total += self.elum_jubaili_breakdown.total_cost
        if self.per_site_breakdown is not None:
            total += self.per_site_breakdown.total_cost
        return total
