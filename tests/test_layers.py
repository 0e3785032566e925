"""Tests for the additive layers: discounted assets, retainer, base pricing.

Tests verify:
- Overridden assets are billed at their negotiated price and carved out of
  the package's capacity
- Retainer hours are floored at the retainer minimum
- Base monthly price is billed per month of the period
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from solarbill.models.params import (
    AssetPriceOverride,
    AssetPricingType,
    BillingFrequency,
    CalculationParams,
    CapabilitySnapshot,
)
from solarbill.models.result import WarningCode
from solarbill.pricing.engine import InvoiceEngine
from solarbill.pricing.errors import InputValidationError


class TestDiscountedAssets:
    """Test negotiated per-asset prices."""

    def test_per_mw_override_carved_out(
        self, engine: InvoiceEngine, mixed_portfolio: CapabilitySnapshot
    ) -> None:
        """Site C is billed at 600/MW; modules bill only the remaining capacity."""
        params = CalculationParams(
            package_type="pro",
            total_mw="8.15",
            selected_modules=["technicalMonitoring"],
            capabilities=mixed_portfolio,
            discounted_assets=[
                AssetPriceOverride(
                    asset_id="site-c", pricing_type=AssetPricingType.PER_MW, price="600"
                )
            ],
        )
        result = engine.calculate(params)

        assert result.discounted_assets[0].mw == Decimal("5")
        assert result.discounted_assets[0].cost == Decimal("3000.00")
        assert result.discounted_assets[0].asset_name == "Site C"
        assert result.module_costs[0].mw == Decimal("3.15")
        assert result.total_mw_cost == Decimal("3150.00")
        assert result.minimum_contract_adjustment == Decimal("0.00")
        assert result.total_price == Decimal("6150.00")

    def test_annual_override(
        self, engine: InvoiceEngine, mixed_portfolio: CapabilitySnapshot
    ) -> None:
        """An annual override is multiplied by the frequency multiplier only."""
        params = CalculationParams(
            package_type="custom",
            total_mw="8.15",
            capabilities=mixed_portfolio,
            billing_frequency=BillingFrequency.QUARTERLY,
            discounted_assets=[AssetPriceOverride(asset_id="site-d", price="1500")],
        )
        result = engine.calculate(params)
        assert result.discounted_assets_total == Decimal("375.00")

    def test_override_counts_toward_floor(self, engine: InvoiceEngine) -> None:
        """Negotiated asset prices are part of the floored package charges."""
        params = CalculationParams(
            package_type="pro",
            total_mw="3",
            selected_modules=["technicalMonitoring"],
            discounted_assets=[AssetPriceOverride(asset_id="ext-1", price="1000", mw="1")],
        )
        result = engine.calculate(params)

        assert result.total_mw_cost == Decimal("2000.00")
        assert result.minimum_contract_adjustment == Decimal("2000.00")
        assert result.total_price == Decimal("5000.00")

    def test_override_excluded_from_site_minimum(
        self, engine: InvoiceEngine, mixed_portfolio: CapabilitySnapshot
    ) -> None:
        """An overridden asset does not also appear in the site-minimum split."""
        params = CalculationParams(
            package_type="pro",
            total_mw="8.15",
            selected_modules=["technicalMonitoring"],
            enable_site_minimum_pricing=True,
            minimum_charge="500",
            capabilities=mixed_portfolio,
            discounted_assets=[AssetPriceOverride(asset_id="site-a", price="100")],
        )
        breakdown = engine.calculate(params).site_minimum_pricing_breakdown

        assert "site-a" not in {a.asset_id for a in breakdown.assets}
        assert breakdown.sites_below_threshold == 1

    def test_missing_capacity_rejected(self, engine: InvoiceEngine) -> None:
        """An override for an unknown asset must carry its capacity."""
        params = CalculationParams(
            package_type="pro",
            total_mw="3",
            discounted_assets=[
                AssetPriceOverride(
                    asset_id="ghost", pricing_type=AssetPricingType.PER_MW, price="600"
                )
            ],
        )
        with pytest.raises(InputValidationError) as exc_info:
            engine.calculate(params)

        assert exc_info.value.field == "discounted_assets.mw"

    def test_duplicate_override_rejected(
        self, engine: InvoiceEngine, mixed_portfolio: CapabilitySnapshot
    ) -> None:
        """An asset can have only one negotiated price."""
        params = CalculationParams(
            package_type="pro",
            total_mw="8.15",
            capabilities=mixed_portfolio,
            discounted_assets=[
                AssetPriceOverride(asset_id="site-a", price="100"),
                AssetPriceOverride(asset_id="site-a", price="200"),
            ],
        )
        with pytest.raises(InputValidationError, match="more than one"):
            engine.calculate(params)

    def test_negative_price_rejected(
        self, engine: InvoiceEngine, mixed_portfolio: CapabilitySnapshot
    ) -> None:
        """Negotiated prices cannot be negative."""
        params = CalculationParams(
            package_type="pro",
            total_mw="8.15",
            capabilities=mixed_portfolio,
            discounted_assets=[AssetPriceOverride(asset_id="site-a", price="-100")],
        )
        with pytest.raises(InputValidationError):
            engine.calculate(params)

    def test_flat_package_ignores_overrides(self, engine: InvoiceEngine) -> None:
        """Packages that do not bill capacity ignore overrides, with a warning."""
        params = CalculationParams(
            package_type="starter",
            discounted_assets=[AssetPriceOverride(asset_id="x", price="100", mw="1")],
        )
        result = engine.calculate(params)

        assert result.discounted_assets == []
        assert result.total_price == Decimal("3000.00")
        assert [w.code for w in result.warnings] == [WarningCode.OVERRIDE_NOT_APPLICABLE]


class TestRetainer:
    """Test retainer hours."""

    def test_minimum_applied(self, engine: InvoiceEngine) -> None:
        """Hours below the minimum bill the minimum."""
        params = CalculationParams(
            package_type="custom",
            retainer_hours="10",
            retainer_hourly_rate="120",
            retainer_minimum_value="1500",
        )
        result = engine.calculate(params)

        assert result.retainer_calculated_cost == Decimal("1200.00")
        assert result.retainer_cost == Decimal("1500.00")
        assert result.retainer_minimum_applied is True
        assert result.total_price == Decimal("1500.00")

    def test_above_minimum(self, engine: InvoiceEngine) -> None:
        """Hours above the minimum bill as computed."""
        params = CalculationParams(
            package_type="custom",
            retainer_hours="20",
            retainer_hourly_rate="120",
            retainer_minimum_value="1500",
        )
        result = engine.calculate(params)

        assert result.retainer_cost == Decimal("2400.00")
        assert result.retainer_minimum_applied is False

    def test_not_scaled_by_frequency(self, engine: InvoiceEngine) -> None:
        """Retainer hours are agreed per invoice."""
        params = CalculationParams(
            package_type="custom",
            billing_frequency=BillingFrequency.MONTHLY,
            retainer_hours="10",
            retainer_hourly_rate="120",
        )
        assert engine.calculate(params).retainer_cost == Decimal("1200.00")


class TestBasePricing:
    """Test base monthly pricing."""

    @pytest.mark.parametrize(
        ("frequency", "expected"),
        [
            (BillingFrequency.MONTHLY, Decimal("200.00")),
            (BillingFrequency.QUARTERLY, Decimal("600.00")),
            (BillingFrequency.ANNUAL, Decimal("2400.00")),
        ],
    )
    def test_months_in_period(
        self, engine: InvoiceEngine, frequency: BillingFrequency, expected: Decimal
    ) -> None:
        """Base price x months in the billing period."""
        params = CalculationParams(
            package_type="custom", base_monthly_price="200", billing_frequency=frequency
        )
        result = engine.calculate(params)
        assert result.base_pricing_cost == expected
        assert result.total_price == expected
