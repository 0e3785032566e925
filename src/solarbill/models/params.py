"""CalculationParams: the single input of the invoice pricing engine.

A CalculationParams is built fresh for every invoice attempt (preview, manual
creation or batch run) and discarded afterwards. It already contains every
metered figure the engine needs; the engine never fetches or refreshes data.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

from solarbill.models.catalog import ComplexityLevel
from solarbill.models.tiers import (
    DiscountTier,
    GraduatedMWTier,
    MinimumChargeTier,
    PerSiteFeeTier,
    PricingTier,
)
from solarbill.models.types import DecimalValue, OptionalDecimal


class PackageType(StrEnum):
    """Supported package strategies. Exactly one applies per calculation."""

    STARTER = "starter"
    PRO = "pro"
    CUSTOM = "custom"
    HYBRID_TIERED = "hybrid_tiered"
    HYBRID_TIERED_ASSETGROUPS = "hybrid_tiered_assetgroups"
    ELUM_INTERNAL = "elum_internal"
    ELUM_EPM = "elum_epm"
    ELUM_JUBAILI = "elum_jubaili"
    ELUM_PORTFOLIO_OS = "elum_portfolio_os"
    PER_SITE = "per_site"
    CAPPED = "capped"
    POC = "poc"


class BillingFrequency(StrEnum):
    """Invoice cadence of a contract."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUAL = "biannual"
    ANNUAL = "annual"


class SiteChargeFrequency(StrEnum):
    """Whether a per-site minimum charge is quoted per year or per month."""

    MONTHLY = "monthly"
    ANNUAL = "annual"


class AssetPricingType(StrEnum):
    """Pricing basis of a discounted-asset override."""

    ANNUAL = "annual"
    PER_MW = "per_mw"


class Currency(StrEnum):
    """ISO 4217 currencies invoices are issued in."""

    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    CHF = "CHF"
    ZAR = "ZAR"


class SelectedAddon(BaseModel):
    """An add-on chosen on the contract for this invoice."""

    id: str = Field(..., min_length=1)
    quantity: OptionalDecimal = Field(default=None, description="Defaults to 1")
    complexity: ComplexityLevel | None = Field(default=None)
    custom_price: OptionalDecimal = Field(
        default=None, description="Negotiated price, used verbatim as the add-on cost"
    )
    custom_tiers: list[PricingTier] | None = Field(
        default=None, description="Contract-specific replacement for the catalog tiers"
    )

    model_config = {"frozen": True, "extra": "forbid"}


class AssetCapability(BaseModel):
    """Metered data for one asset (site) in the invoice period."""

    asset_id: str = Field(..., min_length=1)
    asset_name: str = Field(default="")
    total_mw: DecimalValue = Field(default=Decimal("0"))
    is_hybrid: bool = Field(default=False)
    has_solcast: bool = Field(default=False)
    solcast_onboarding_date: date | None = Field(default=None)
    onboarding_date: date | None = Field(default=None)

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def capacity_kwp(self) -> Decimal:
        return self.total_mw * Decimal("1000")


class CapabilitySnapshot(BaseModel):
    """Capability data resolved for the invoice period by the usage source."""

    ongrid_total_mw: OptionalDecimal = Field(default=None)
    hybrid_total_mw: OptionalDecimal = Field(default=None)
    site_count: int | None = Field(default=None, ge=0)
    sites_with_solcast: int | None = Field(default=None, ge=0)
    assets: list[AssetCapability] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    def asset_by_id(self, asset_id: str) -> AssetCapability | None:
        for asset in self.assets:
            if asset.asset_id == asset_id:
                return asset
        return None

    def metered_value(self, field_name: str) -> Decimal | None:
        """Return a numeric aggregate field by name, used for add-on auto-activation."""
        if field_name not in type(self).model_fields or field_name == "assets":
            return None
        value = getattr(self, field_name)
        if value is None:
            return None
        return Decimal(str(value))


class SiteBillingItem(BaseModel):
    """Billing status of one site under a per-site contract."""

    asset_id: str = Field(..., min_length=1)
    asset_name: str = Field(default="")
    capacity_kwp: OptionalDecimal = Field(default=None)
    onboarding_date: date | None = Field(default=None)
    needs_onboarding: bool = Field(default=False)
    needs_annual_renewal: bool = Field(default=False)
    next_annual_due_date: date | None = Field(default=None)

    model_config = {"frozen": True, "extra": "forbid"}

    def is_due_for_annual(self, invoice_date: date | None) -> bool:
        """Annual fee is due on first onboarding, when flagged, or once the due date passed."""
        if self.needs_onboarding or self.needs_annual_renewal:
            return True
        if self.next_annual_due_date is None or invoice_date is None:
            return False
        return self.next_annual_due_date <= invoice_date


class AssetPriceOverride(BaseModel):
    """Negotiated price for one asset, billed outside the standard per-MW calculation."""

    asset_id: str = Field(..., min_length=1)
    asset_name: str | None = Field(default=None)
    pricing_type: AssetPricingType = Field(default=AssetPricingType.ANNUAL)
    price: DecimalValue = Field(..., description="Annual fee, or annual price per MW")
    mw: OptionalDecimal = Field(
        default=None, description="Capacity when the asset is absent from the snapshot"
    )
    note: str | None = Field(default=None)

    model_config = {"frozen": True, "extra": "forbid"}


class CalculationParams(BaseModel):
    """Complete, immutable input for one invoice calculation.

    ``package_type`` is kept as a plain string so that an unknown value is
    reported by the engine as a ConfigurationError naming the package, not as
    a generic model validation failure.
    """

    package_type: str = Field(..., description="One of PackageType")
    total_mw: DecimalValue = Field(default=Decimal("0"), description="Managed capacity in MW")
    selected_modules: list[str] = Field(default_factory=list)
    selected_addons: list[SelectedAddon] = Field(default_factory=list)
    custom_pricing: dict[str, DecimalValue] = Field(
        default_factory=dict, description="Module ID -> negotiated price per MW per year"
    )

    minimum_annual_value: OptionalDecimal = Field(default=None)
    minimum_charge: DecimalValue = Field(default=Decimal("0"), description="Per-site minimum")
    minimum_charge_tiers: list[MinimumChargeTier] = Field(default_factory=list)
    sites_under_threshold: int = Field(default=0, ge=0)
    enable_site_minimum_pricing: bool = Field(default=False)
    site_charge_frequency: SiteChargeFrequency = Field(default=SiteChargeFrequency.ANNUAL)
    portfolio_discount_tiers: list[DiscountTier] = Field(default_factory=list)

    frequency_multiplier: OptionalDecimal = Field(
        default=None, description="Precomputed multiplier; derived from the frequency if absent"
    )
    billing_frequency: BillingFrequency = Field(default=BillingFrequency.ANNUAL)
    capabilities: CapabilitySnapshot | None = Field(default=None)

    base_monthly_price: DecimalValue = Field(default=Decimal("0"))

    retainer_hours: DecimalValue = Field(default=Decimal("0"))
    retainer_hourly_rate: DecimalValue = Field(default=Decimal("0"))
    retainer_minimum_value: DecimalValue = Field(default=Decimal("0"))

    ongrid_price_per_mw: OptionalDecimal = Field(default=None)
    hybrid_price_per_mw: OptionalDecimal = Field(default=None)

    site_size_threshold_kwp: DecimalValue = Field(default=Decimal("100"))
    below_threshold_price_per_mw: DecimalValue = Field(default=Decimal("50"))
    above_threshold_price_per_mw: DecimalValue = Field(default=Decimal("30"))

    graduated_mw_tiers: list[GraduatedMWTier] = Field(default_factory=list)

    per_site_fee_tiers: list[PerSiteFeeTier] = Field(default_factory=list)
    annual_fee_per_site: DecimalValue = Field(default=Decimal("1000"))
    onboarding_fee_per_site: DecimalValue = Field(default=Decimal("1000"))
    sites_to_bill: list[SiteBillingItem] = Field(default_factory=list)

    discounted_assets: list[AssetPriceOverride] = Field(default_factory=list)

    max_mw: OptionalDecimal = Field(default=None, description="MW cap of a capped package")

    invoice_date: date | None = Field(default=None)
    period_start: date | None = Field(default=None)
    period_end: date | None = Field(default=None)
    contract_signed_date: date | None = Field(default=None)
    is_first_invoice: bool = Field(default=False)

    currency: Currency | None = Field(default=None, description="Defaults to engine config")

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("selected_modules")
    @classmethod
    def dedupe_modules(cls, v: list[str]) -> list[str]:
        """Selected modules have set semantics; keep first occurrence order."""
        seen: set[str] = set()
        unique: list[str] = []
        for module_id in v:
            if module_id not in seen:
                seen.add(module_id)
                unique.append(module_id)
        return unique

    @property
    def assets(self) -> list[AssetCapability]:
        return self.capabilities.assets if self.capabilities else []
