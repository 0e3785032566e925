"""CalculationResult: the itemized output of one invoice calculation.

Every monetary figure is a non-negative Decimal quantized to the configured
money precision. Package-specific breakdowns are None unless the package that
populates them was the one dispatched.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field

from solarbill.models.catalog import AddonPricingMode
from solarbill.models.params import AssetPricingType
from solarbill.models.types import DecimalValue, OptionalDecimal

ZERO = Decimal("0")


class WarningCode(StrEnum):
    """Recoverable conditions recorded on a result."""

    DATA_GAP_ASSETS = "DATA_GAP_ASSETS"
    DATA_GAP_CAPACITY_SPLIT = "DATA_GAP_CAPACITY_SPLIT"
    DATA_GAP_SITE_COUNT = "DATA_GAP_SITE_COUNT"
    DATA_GAP_ONBOARDING_DATES = "DATA_GAP_ONBOARDING_DATES"
    MW_CAP_EXCEEDED = "MW_CAP_EXCEEDED"
    OVERRIDE_NOT_APPLICABLE = "OVERRIDE_NOT_APPLICABLE"


class CalculationWarning(BaseModel):
    """A recoverable data gap or policy notice attributable to a package and field."""

    code: WarningCode = Field(..., description="Machine-readable warning code")
    message: str = Field(..., description="Human-readable description")
    package_type: str | None = Field(default=None)
    field: str | None = Field(default=None, description="Input field the warning concerns")

    model_config = {"frozen": True, "extra": "forbid"}


class ModuleCost(BaseModel):
    """Cost line for one selected module."""

    module_id: str
    module_name: str
    rate: DecimalValue = Field(..., description="Annual price per MW actually applied")
    mw: DecimalValue = Field(..., description="Capacity billed for this module")
    cost: DecimalValue
    discount_percent: DecimalValue = Field(default=ZERO)

    model_config = {"frozen": True, "extra": "forbid"}


class AddonCost(BaseModel):
    """Cost line for one add-on."""

    addon_id: str
    addon_name: str
    cost: DecimalValue
    quantity: DecimalValue = Field(default=Decimal("1"))
    price_per_unit: OptionalDecimal = Field(default=None)
    applied_tier: str | None = Field(default=None, description="Label of the resolved tier")
    pricing_mode: AddonPricingMode | None = Field(
        default=None, description="None when a custom price was used verbatim"
    )
    recurring: bool = Field(default=False)
    billed_months: OptionalDecimal = Field(
        default=None, description="Months (or site-months) a recurring add-on was billed for"
    )
    auto_activated: bool = Field(default=False)

    model_config = {"frozen": True, "extra": "forbid"}


class SiteMinimumAsset(BaseModel):
    """Per-asset line of site-minimum pricing."""

    asset_id: str
    asset_name: str = ""
    mw: DecimalValue
    calculated_cost: DecimalValue
    billed_cost: DecimalValue
    on_minimum: bool

    model_config = {"frozen": True, "extra": "forbid"}


class SiteMinimumPricingBreakdown(BaseModel):
    """Split of a pro/custom portfolio into sites above threshold and sites on minimum."""

    minimum_charge_per_site: DecimalValue
    applied_tier: str | None = None
    sites_above_threshold: int = 0
    sites_below_threshold: int = 0
    above_threshold_mw: DecimalValue = ZERO
    below_threshold_mw: DecimalValue = ZERO
    above_threshold_cost: DecimalValue = ZERO
    below_threshold_cost: DecimalValue = ZERO
    assets: list[SiteMinimumAsset] = Field(default_factory=list)
    used_aggregate_fallback: bool = False

    model_config = {"frozen": True, "extra": "forbid"}


class CapacityBucket(BaseModel):
    mw: DecimalValue
    rate: DecimalValue
    cost: DecimalValue

    model_config = {"frozen": True, "extra": "forbid"}


class HybridTieredBreakdown(BaseModel):
    """On-grid and hybrid capacity, each billed at its own rate."""

    ongrid: CapacityBucket
    hybrid: CapacityBucket
    used_fallback: bool = False

    model_config = {"frozen": True, "extra": "forbid"}


class GraduatedSlice(BaseModel):
    """One cumulative tier slice of graduated MW pricing."""

    label: str
    min_mw: DecimalValue
    max_mw: OptionalDecimal = None
    mw_in_tier: DecimalValue
    price_per_mw: DecimalValue
    cost: DecimalValue

    model_config = {"frozen": True, "extra": "forbid"}


class ElumInternalBreakdown(BaseModel):
    total_mw: DecimalValue
    slices: list[GraduatedSlice] = Field(default_factory=list)
    total_cost: DecimalValue = ZERO

    model_config = {"frozen": True, "extra": "forbid"}


class ThresholdBucket(BaseModel):
    """A group of assets billed under one rule of threshold pricing."""

    site_count: int = 0
    mw: DecimalValue = ZERO
    rate: DecimalValue = ZERO
    cost: DecimalValue = ZERO
    asset_ids: list[str] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}


class ElumEpmBreakdown(BaseModel):
    """Threshold two-rate pricing with a per-site minimum bucket."""

    threshold_kwp: DecimalValue
    small_sites: ThresholdBucket
    large_sites: ThresholdBucket
    minimum_sites: ThresholdBucket
    minimum_charge_per_site: DecimalValue = ZERO
    total_cost: DecimalValue = ZERO
    used_aggregate_fallback: bool = False

    model_config = {"frozen": True, "extra": "forbid"}


class ElumJubailiBreakdown(BaseModel):
    site_count: int
    per_site_fee: DecimalValue
    applied_tier: str | None = None
    total_cost: DecimalValue = ZERO

    model_config = {"frozen": True, "extra": "forbid"}


class PerSiteLine(BaseModel):
    asset_id: str
    asset_name: str = ""
    fee: DecimalValue

    model_config = {"frozen": True, "extra": "forbid"}


class PerSiteBreakdown(BaseModel):
    """Onboarding and annual renewal fees of a per-site contract."""

    onboarding_fee_per_site: DecimalValue
    annual_fee_per_site: DecimalValue
    onboarding: list[PerSiteLine] = Field(default_factory=list)
    annual: list[PerSiteLine] = Field(default_factory=list)
    onboarding_total: DecimalValue = ZERO
    annual_total: DecimalValue = ZERO
    total_cost: DecimalValue = ZERO

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def onboarding_count(self) -> int:
        return len(self.onboarding)

    @property
    def annual_count(self) -> int:
        return len(self.annual)


class DiscountedAssetCost(BaseModel):
    """An asset billed at its negotiated price, outside the standard calculation."""

    asset_id: str
    asset_name: str = ""
    pricing_type: AssetPricingType
    price: DecimalValue
    mw: DecimalValue
    cost: DecimalValue
    note: str | None = None

    model_config = {"frozen": True, "extra": "forbid"}


class CalculationResult(BaseModel):
    """Itemized monetary breakdown of one invoice."""

    package_type: str
    currency: str
    module_costs: list[ModuleCost] = Field(default_factory=list)
    addon_costs: list[AddonCost] = Field(default_factory=list)

    starter_package_cost: DecimalValue = ZERO
    base_pricing_cost: DecimalValue = ZERO
    minimum_charges: DecimalValue = ZERO
    total_mw_cost: DecimalValue = Field(
        default=ZERO, description="Capacity-driven package cost before the contract floor"
    )

    site_minimum_pricing_breakdown: SiteMinimumPricingBreakdown | None = None
    hybrid_tiered_breakdown: HybridTieredBreakdown | None = None
    elum_internal_breakdown: ElumInternalBreakdown | None = None
    elum_epm_breakdown: ElumEpmBreakdown | None = None
    elum_jubaili_breakdown: ElumJubailiBreakdown | None = None
    per_site_breakdown: PerSiteBreakdown | None = None

    retainer_cost: DecimalValue = ZERO
    retainer_calculated_cost: DecimalValue = ZERO
    retainer_minimum_applied: bool = False

    discounted_assets: list[DiscountedAssetCost] = Field(default_factory=list)
    discounted_assets_total: DecimalValue = ZERO

    portfolio_discount_percent: DecimalValue = ZERO
    portfolio_discount_amount: DecimalValue = ZERO

    minimum_contract_value: OptionalDecimal = Field(
        default=None, description="Floor for this period (annual minimum x multiplier)"
    )
    minimum_contract_adjustment: DecimalValue = ZERO

    total_price: DecimalValue = ZERO
    arr_amount: DecimalValue = ZERO
    nrr_amount: DecimalValue = ZERO

    invoice_period: str = ""
    frequency_multiplier: DecimalValue = Decimal("1")
    period_months: int = 12
    warnings: list[CalculationWarning] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def addons_total(self) -> Decimal:
        return sum((a.cost for a in self.addon_costs), ZERO)

    @property
    def module_costs_total(self) -> Decimal:
        return sum((m.cost for m in self.module_costs), ZERO)
