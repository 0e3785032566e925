"""Tests for the per-site package.

Tests verify:
- Onboarding always bundles the first annual fee
- Annual renewal is due when flagged or once the due date has passed
- Fees are per event and ignore the frequency multiplier
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from solarbill.models.params import (
    AssetPriceOverride,
    BillingFrequency,
    CalculationParams,
    SiteBillingItem,
)
from solarbill.pricing.engine import InvoiceEngine
from solarbill.pricing.line_items import build_line_items


def _sites() -> list[SiteBillingItem]:
    return [
        SiteBillingItem(asset_id="new-1", asset_name="New 1", needs_onboarding=True),
        SiteBillingItem(asset_id="new-2", asset_name="New 2", needs_onboarding=True),
        SiteBillingItem(
            asset_id="old-1", asset_name="Old 1", next_annual_due_date=date(2026, 3, 1)
        ),
        SiteBillingItem(asset_id="old-2", asset_name="Old 2", needs_annual_renewal=True),
        SiteBillingItem(
            asset_id="old-3", asset_name="Old 3", next_annual_due_date=date(2026, 6, 1)
        ),
    ]


class TestSiteBillingItem:
    """Test annual fee due-date logic."""

    def test_onboarding_is_due(self) -> None:
        """A site being onboarded is due its first annual fee."""
        assert SiteBillingItem(asset_id="s", needs_onboarding=True).is_due_for_annual(None)

    def test_flagged_renewal_is_due(self) -> None:
        """An explicit renewal flag makes the fee due."""
        assert SiteBillingItem(asset_id="s", needs_annual_renewal=True).is_due_for_annual(None)

    def test_due_date_passed(self) -> None:
        """The fee is due on and after the due date."""
        site = SiteBillingItem(asset_id="s", next_annual_due_date=date(2026, 3, 1))
        assert site.is_due_for_annual(date(2026, 3, 1))
        assert site.is_due_for_annual(date(2026, 4, 1))
        assert not site.is_due_for_annual(date(2026, 2, 28))

    def test_unknown_dates_not_due(self) -> None:
        """Without a due date or invoice date nothing is due."""
        assert not SiteBillingItem(asset_id="s").is_due_for_annual(date(2026, 3, 1))
        site = SiteBillingItem(asset_id="s", next_annual_due_date=date(2026, 3, 1))
        assert not site.is_due_for_annual(None)


class TestPerSitePackage:
    """Test onboarding and renewal fees."""

    def test_onboarding_bundles_annual_fee(self, engine: InvoiceEngine) -> None:
        """A new site pays onboarding plus its first annual fee."""
        params = CalculationParams(
            package_type="per_site",
            sites_to_bill=[SiteBillingItem(asset_id="new-1", needs_onboarding=True)],
        )
        result = engine.calculate(params)
        breakdown = result.per_site_breakdown

        assert breakdown is not None
        assert [line.asset_id for line in breakdown.onboarding] == ["new-1"]
        assert [line.asset_id for line in breakdown.annual] == ["new-1"]
        assert breakdown.total_cost == Decimal("2000.00")
        assert result.total_price == Decimal("2000.00")

    def test_mixed_portfolio_of_sites(self, engine: InvoiceEngine) -> None:
        """Two onboardings, three renewals due, one renewal not yet due."""
        params = CalculationParams(
            package_type="per_site",
            invoice_date=date(2026, 3, 15),
            sites_to_bill=_sites(),
            onboarding_fee_per_site="1500",
            annual_fee_per_site="900",
        )
        breakdown = engine.calculate(params).per_site_breakdown

        assert breakdown.onboarding_count == 2
        assert breakdown.annual_count == 4
        assert "old-3" not in {line.asset_id for line in breakdown.annual}
        assert breakdown.onboarding_total == Decimal("3000.00")
        assert breakdown.annual_total == Decimal("3600.00")
        assert breakdown.total_cost == Decimal("6600.00")

    def test_frequency_does_not_scale_fees(self, engine: InvoiceEngine) -> None:
        """Per-site fees are per event, not per period."""
        params = CalculationParams(
            package_type="per_site",
            billing_frequency=BillingFrequency.QUARTERLY,
            sites_to_bill=[SiteBillingItem(asset_id="new-1", needs_onboarding=True)],
        )
        assert engine.calculate(params).total_price == Decimal("2000.00")

    def test_nothing_due(self, engine: InvoiceEngine) -> None:
        """No events means a zero invoice."""
        params = CalculationParams(
            package_type="per_site",
            invoice_date=date(2026, 3, 15),
            sites_to_bill=[
                SiteBillingItem(asset_id="old-3", next_annual_due_date=date(2026, 6, 1))
            ],
        )
        assert engine.calculate(params).total_price == Decimal("0.00")

    def test_overridden_site_skipped(self, engine: InvoiceEngine) -> None:
        """A site with a negotiated price is billed only through the override."""
        params = CalculationParams(
            package_type="per_site",
            sites_to_bill=[
                SiteBillingItem(asset_id="new-1", needs_onboarding=True),
                SiteBillingItem(asset_id="new-2", needs_onboarding=True),
            ],
            discounted_assets=[AssetPriceOverride(asset_id="new-2", price="400", mw="0.2")],
        )
        result = engine.calculate(params)

        assert result.per_site_breakdown.onboarding_count == 1
        assert result.discounted_assets_total == Decimal("400.00")
        assert result.total_price == Decimal("2400.00")

    def test_line_items_use_site_counts(self, engine: InvoiceEngine) -> None:
        """Line items carry the number of sites as quantity."""
        params = CalculationParams(
            package_type="per_site",
            invoice_date=date(2026, 3, 15),
            sites_to_bill=_sites(),
        )
        result = engine.calculate(params)
        lines = {line.description: line for line in build_line_items(result)}

        assert lines["Site onboarding fee"].quantity == Decimal("2")
        assert lines["Site annual fee"].quantity == Decimal("4")
        assert lines["Site annual fee"].unit_amount == Decimal("1000.00")
        assert sum(line.line_amount for line in lines.values()) == result.total_price
