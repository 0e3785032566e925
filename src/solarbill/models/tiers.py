"""Tier table models.

A tier is a half-open ``[min_quantity, max_quantity)`` interval with a value
attached. ``max_quantity=None`` marks an unbounded tier, which is only
meaningful as the last entry of a table. The models themselves accept any
shape; table-level checks (ordering, overlap, boundaries) are done by the
resolvers in ``solarbill.pricing.tiers`` so that a malformed contract table
surfaces as a ConfigurationError naming the offending field.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from solarbill.models.types import DecimalValue, OptionalDecimal


class Tier(BaseModel):
    """Base quantity interval shared by every tier table."""

    min_quantity: DecimalValue = Field(
        default=Decimal("0"), description="Inclusive lower bound of the tier"
    )
    max_quantity: OptionalDecimal = Field(
        default=None, description="Exclusive upper bound; None means unbounded"
    )
    label: str | None = Field(default=None, description="Display label, e.g. '0-49 MW'")

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def is_unbounded(self) -> bool:
        return self.max_quantity is None

    def display_label(self, unit: str = "") -> str:
        """Label for reports; derived from the bounds when none was given."""
        if self.label:
            return self.label
        suffix = f" {unit}" if unit else ""
        if self.max_quantity is None:
            return f"{self.min_quantity}+{suffix}"
        return f"{self.min_quantity}-{self.max_quantity}{suffix}"


class PricingTier(Tier):
    """Quantity tier for add-on per-unit pricing (e.g. satellite data per site)."""

    price_per_unit: DecimalValue = Field(..., description="Price per unit inside this tier")


class MinimumChargeTier(Tier):
    """Per-site minimum charge keyed on portfolio capacity (MW)."""

    charge_per_site: DecimalValue = Field(..., description="Annual minimum charge per site")


class DiscountTier(Tier):
    """Portfolio volume discount keyed on aggregate managed capacity (MW)."""

    discount_percent: DecimalValue = Field(
        ..., description="Percentage reduction, e.g. 5 for 5%"
    )


class GraduatedMWTier(Tier):
    """Cumulative capacity tier: each MW slice is billed at its own rate."""

    price_per_mw: DecimalValue = Field(..., description="Annual price per MW inside the slice")


class PerSiteFeeTier(Tier):
    """Per-site flat fee keyed on total portfolio capacity (MW)."""

    per_site_fee: DecimalValue = Field(..., description="Annual fee per site")
