"""Tests for accounting line items.

Tests verify:
- Line amounts always sum to total_price
- Revenue types and account codes
- Zero-cost categories produce no lines
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from solarbill.models.catalog import ComplexityLevel
from solarbill.models.params import (
    AssetPriceOverride,
    BillingFrequency,
    CalculationParams,
    CapabilitySnapshot,
    SelectedAddon,
)
from solarbill.models.tiers import GraduatedMWTier
from solarbill.pricing.catalog import SATELLITE_DATA_ADDON_ID
from solarbill.pricing.engine import InvoiceEngine
from solarbill.pricing.line_items import (
    IMPLEMENTATION_FEES_ACCOUNT,
    PLATFORM_FEES_ACCOUNT,
    RevenueType,
    build_line_items,
)


def _scenarios(portfolio: CapabilitySnapshot) -> dict[str, CalculationParams]:
    return {
        "pro-floor-retainer-addons": CalculationParams(
            package_type="pro",
            total_mw="2",
            selected_modules=["technicalMonitoring"],
            retainer_hours="5",
            retainer_hourly_rate="150",
            base_monthly_price="100",
            selected_addons=[
                SelectedAddon(id="dataLoggerSetup", complexity=ComplexityLevel.HIGH),
                SelectedAddon(id=SATELLITE_DATA_ADDON_ID, quantity=3),
            ],
        ),
        "site-minimum": CalculationParams(
            package_type="custom",
            total_mw="8.15",
            selected_modules=["technicalMonitoring", "control"],
            enable_site_minimum_pricing=True,
            minimum_charge="800",
            capabilities=portfolio,
            billing_frequency=BillingFrequency.MONTHLY,
        ),
        "hybrid": CalculationParams(
            package_type="hybrid_tiered",
            total_mw="8.15",
            selected_modules=["technicalMonitoring", "energySavingsHub"],
            ongrid_price_per_mw="810.5",
            hybrid_price_per_mw="1190.25",
            capabilities=portfolio,
            billing_frequency=BillingFrequency.QUARTERLY,
            discounted_assets=[AssetPriceOverride(asset_id="site-b", price="333.33")],
        ),
        "graduated": CalculationParams(
            package_type="elum_internal",
            total_mw="12.345",
            graduated_mw_tiers=[
                GraduatedMWTier(min_quantity="0", max_quantity="5", price_per_mw="100"),
                GraduatedMWTier(min_quantity="5", price_per_mw="80"),
            ],
            billing_frequency=BillingFrequency.MONTHLY,
        ),
        "epm": CalculationParams(
            package_type="elum_epm",
            total_mw="8.15",
            minimum_charge="100",
            capabilities=portfolio,
        ),
        "jubaili": CalculationParams(
            package_type="elum_jubaili",
            total_mw="8.15",
            capabilities=portfolio,
            billing_frequency=BillingFrequency.BIANNUAL,
        ),
        "capped": CalculationParams(package_type="capped", minimum_annual_value="9999.99"),
    }


class TestLineItemTotals:
    """Test that line items reconcile with the result."""

    @pytest.mark.parametrize(
        "scenario",
        [
            "pro-floor-retainer-addons",
            "site-minimum",
            "hybrid",
            "graduated",
            "epm",
            "jubaili",
            "capped",
        ],
    )
    def test_lines_sum_to_total(
        self,
        engine: InvoiceEngine,
        mixed_portfolio: CapabilitySnapshot,
        scenario: str,
    ) -> None:
        """The invoice sink receives exactly total_price."""
        result = engine.calculate(_scenarios(mixed_portfolio)[scenario])
        lines = build_line_items(result)

        assert lines
        assert sum(line.line_amount for line in lines) == result.total_price

    def test_zero_invoice_has_no_lines(self, engine: InvoiceEngine) -> None:
        """A poc result produces no line items."""
        result = engine.calculate(CalculationParams(package_type="poc"))
        assert build_line_items(result) == []


class TestRevenueTypes:
    """Test account codes and revenue types."""

    def test_account_codes(self, engine: InvoiceEngine) -> None:
        """Recurring lines go to platform fees; one-off add-ons to implementation fees."""
        params = CalculationParams(
            package_type="pro",
            total_mw="10",
            selected_modules=["technicalMonitoring"],
            selected_addons=[
                SelectedAddon(id="customReport"),
                SelectedAddon(id=SATELLITE_DATA_ADDON_ID, quantity=3),
            ],
        )
        lines = {line.description: line for line in build_line_items(engine.calculate(params))}

        report = lines["Custom Report"]
        assert report.revenue_type == RevenueType.NRR
        assert report.account_code == IMPLEMENTATION_FEES_ACCOUNT

        satellite = lines["Satellite Data API Access"]
        assert satellite.revenue_type == RevenueType.ARR
        assert satellite.account_code == PLATFORM_FEES_ACCOUNT

        module = lines["Technical Monitoring (10 MW @ 1000/MW)"]
        assert module.revenue_type == RevenueType.ARR
        assert module.line_amount == Decimal("10000.00")

    def test_nrr_lines_match_nrr_amount(self, engine: InvoiceEngine) -> None:
        """The NRR lines add up to the result's NRR amount."""
        params = CalculationParams(
            package_type="custom",
            total_mw="4",
            selected_modules=["control"],
            selected_addons=[
                SelectedAddon(id="customReport"),
                SelectedAddon(id="customAlerts", quantity=4),
            ],
        )
        result = engine.calculate(params)
        nrr = sum(
            line.line_amount
            for line in build_line_items(result)
            if line.revenue_type == RevenueType.NRR
        )
        assert nrr == result.nrr_amount == Decimal("2100.00")

    def test_floor_adjustment_line(self, engine: InvoiceEngine) -> None:
        """A contract floor top-up is its own line."""
        params = CalculationParams(
            package_type="pro", total_mw="2", selected_modules=["technicalMonitoring"]
        )
        lines = {line.description: line for line in build_line_items(engine.calculate(params))}
        assert lines["Minimum contract value adjustment"].line_amount == Decimal("3000.00")
