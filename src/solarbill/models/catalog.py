"""Pricing catalog models: modules and add-ons.

The catalog is an immutable value injected into every calculation.
Per-customer price changes are expressed as override maps on the
CalculationParams, never by mutating a catalog instance.
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from solarbill.models.tiers import PricingTier
from solarbill.models.types import DecimalValue, OptionalDecimal


class AddonPricingMode(StrEnum):
    """How an add-on's base price is determined."""

    FLAT = "flat"
    COMPLEXITY = "complexity"
    TIERED = "tiered"


class ComplexityLevel(StrEnum):
    """Complexity grade for complexity-priced add-ons."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ModuleDefinition(BaseModel):
    """A per-capacity monitoring feature priced per MW per year."""

    id: str = Field(..., min_length=1, description="Stable module identifier")
    name: str = Field(..., description="Display name")
    price: DecimalValue = Field(..., description="List price per MW per year")
    available: bool = Field(default=True, description="Whether the module can be sold")

    model_config = {"frozen": True, "extra": "forbid"}


class AddonDefinition(BaseModel):
    """A one-off or recurring service sold on top of a package.

    Attributes:
        pricing_mode: Which of price / complexity prices / pricing_tiers applies.
        recurring: Monthly-priced add-on billed for every month of the period.
        auto_activate_field: CapabilitySnapshot field whose positive value
            activates the add-on and supplies its quantity.
        prorate_by_onboarding: Bill recurring quantity per site-month using the
            assets' satellite-data onboarding dates when period bounds are known.
    """

    id: str = Field(..., min_length=1, description="Stable add-on identifier")
    name: str = Field(..., description="Display name")
    pricing_mode: AddonPricingMode = Field(default=AddonPricingMode.FLAT)
    price: OptionalDecimal = Field(default=None, description="Flat price per unit")
    low_price: OptionalDecimal = Field(default=None)
    medium_price: OptionalDecimal = Field(default=None)
    high_price: OptionalDecimal = Field(default=None)
    pricing_tiers: tuple[PricingTier, ...] = Field(default_factory=tuple)
    recurring: bool = Field(default=False)
    auto_activate_field: str | None = Field(default=None)
    prorate_by_onboarding: bool = Field(default=False)
    requires_pro: bool = Field(default=False)

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def validate_pricing_fields(self) -> AddonDefinition:
        """Each pricing mode must carry the prices it needs."""
        if self.pricing_mode == AddonPricingMode.FLAT and self.price is None:
            raise ValueError(f"Flat add-on '{self.id}' requires price")
        if self.pricing_mode == AddonPricingMode.COMPLEXITY and None in (
            self.low_price,
            self.medium_price,
            self.high_price,
        ):
            raise ValueError(f"Complexity add-on '{self.id}' requires low/medium/high prices")
        if self.pricing_mode == AddonPricingMode.TIERED and not self.pricing_tiers:
            raise ValueError(f"Tiered add-on '{self.id}' requires pricing_tiers")
        return self

    def complexity_price(self, level: ComplexityLevel) -> Decimal:
        """Return the price for a complexity level."""
        prices = {
            ComplexityLevel.LOW: self.low_price,
            ComplexityLevel.MEDIUM: self.medium_price,
            ComplexityLevel.HIGH: self.high_price,
        }
        price = prices[level]
        if price is None:
            raise ValueError(f"Add-on '{self.id}' has no {level.value} price")
        return price


class PricingCatalog(BaseModel):
    """Immutable set of module and add-on definitions."""

    version: str = Field(default="1", description="Catalog revision label")
    modules: tuple[ModuleDefinition, ...] = Field(default_factory=tuple)
    addons: tuple[AddonDefinition, ...] = Field(default_factory=tuple)

    model_config = {"frozen": True, "extra": "forbid"}

    @model_validator(mode="after")
    def validate_unique_ids(self) -> PricingCatalog:
        """Module and add-on IDs must be unique within their kind."""
        for kind, items in (("module", self.modules), ("add-on", self.addons)):
            seen: set[str] = set()
            for item in items:
                if item.id in seen:
                    raise ValueError(f"Duplicate {kind} id in catalog: '{item.id}'")
                seen.add(item.id)
        return self

    def get_module(self, module_id: str) -> ModuleDefinition | None:
        for module in self.modules:
            if module.id == module_id:
                return module
        return None

    def get_addon(self, addon_id: str) -> AddonDefinition | None:
        for addon in self.addons:
            if addon.id == addon_id:
                return addon
        return None
