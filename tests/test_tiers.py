"""Tests for tier and discount resolvers.

Tests verify:
- Malformed tier tables fail closed with ConfigurationError naming the field
- Tier lookup on boundaries, below the first tier and past the last
- Graduated splits partition the total exactly
- Portfolio discount lookup
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from solarbill.models.tiers import DiscountTier, GraduatedMWTier, PricingTier
from solarbill.pricing.errors import ConfigurationError, InputValidationError
from solarbill.pricing.tiers import (
    applicable_discount,
    resolve_tier,
    split_graduated,
    validate_tiers,
)


def _price_tiers() -> list[PricingTier]:
    return [
        PricingTier(min_quantity="10", max_quantity="50", price_per_unit="6"),
        PricingTier(min_quantity="50", max_quantity="200", price_per_unit="5"),
        PricingTier(min_quantity="200", price_per_unit="4"),
    ]


def _graduated_tiers() -> list[GraduatedMWTier]:
    return [
        GraduatedMWTier(min_quantity="0", max_quantity="5", price_per_mw="100"),
        GraduatedMWTier(min_quantity="5", price_per_mw="80"),
    ]


def _discount_tiers() -> list[DiscountTier]:
    return [
        DiscountTier(min_quantity="0", max_quantity="50", discount_percent="0"),
        DiscountTier(min_quantity="50", max_quantity="100", discount_percent="5"),
        DiscountTier(min_quantity="100", max_quantity="250", discount_percent="10"),
        DiscountTier(min_quantity="250", discount_percent="20"),
    ]


class TestValidateTiers:
    """Test tier table validation."""

    def test_valid_table_passes(self) -> None:
        """A well-formed table raises nothing."""
        validate_tiers(_price_tiers(), field="pricing_tiers")

    def test_empty_table_rejected(self) -> None:
        """An empty table is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_tiers([], field="minimum_charge_tiers", package_type="pro")

        assert exc_info.value.field == "minimum_charge_tiers"
        assert exc_info.value.package_type == "pro"

    def test_descending_minima_rejected(self) -> None:
        """Minima must be strictly ascending."""
        tiers = [
            PricingTier(min_quantity="50", max_quantity="100", price_per_unit="5"),
            PricingTier(min_quantity="10", max_quantity="50", price_per_unit="6"),
        ]
        with pytest.raises(ConfigurationError, match="ascending"):
            validate_tiers(tiers, field="pricing_tiers")

    def test_overlapping_tiers_rejected(self) -> None:
        """A tier's max may not run past the next tier's min."""
        tiers = [
            PricingTier(min_quantity="0", max_quantity="60", price_per_unit="6"),
            PricingTier(min_quantity="50", price_per_unit="5"),
        ]
        with pytest.raises(ConfigurationError, match="overlap"):
            validate_tiers(tiers, field="pricing_tiers")

    def test_unbounded_tier_must_be_last(self) -> None:
        """Only the last tier may omit max_quantity."""
        tiers = [
            PricingTier(min_quantity="0", price_per_unit="6"),
            PricingTier(min_quantity="50", price_per_unit="5"),
        ]
        with pytest.raises(ConfigurationError, match="not the last tier"):
            validate_tiers(tiers, field="pricing_tiers")

    def test_max_not_above_min_rejected(self) -> None:
        """An empty interval is malformed."""
        tiers = [PricingTier(min_quantity="10", max_quantity="10", price_per_unit="6")]
        with pytest.raises(ConfigurationError):
            validate_tiers(tiers, field="pricing_tiers")

    def test_negative_min_rejected(self) -> None:
        """Tier bounds are quantities and cannot be negative."""
        tiers = [PricingTier(min_quantity="-1", price_per_unit="6")]
        with pytest.raises(ConfigurationError, match="negative"):
            validate_tiers(tiers, field="pricing_tiers")


class TestResolveTier:
    """Test quantity to tier lookup."""

    def test_quantity_inside_tier(self) -> None:
        """A quantity inside an interval resolves to that tier."""
        tier = resolve_tier(Decimal("120"), _price_tiers())
        assert tier.price_per_unit == Decimal("5")

    def test_lower_bound_is_inclusive(self) -> None:
        """A quantity equal to a tier minimum belongs to that tier."""
        tier = resolve_tier(Decimal("50"), _price_tiers())
        assert tier.price_per_unit == Decimal("5")

    def test_upper_bound_is_exclusive(self) -> None:
        """A quantity just below the next minimum stays in the lower tier."""
        tier = resolve_tier(Decimal("49.99"), _price_tiers())
        assert tier.price_per_unit == Decimal("6")

    def test_below_first_tier_clamps_to_first(self) -> None:
        """Quantities below the first minimum use the first tier."""
        tier = resolve_tier(Decimal("5"), _price_tiers())
        assert tier.price_per_unit == Decimal("6")

    def test_past_last_tier(self) -> None:
        """Large quantities land in the unbounded last tier."""
        tier = resolve_tier(Decimal("100000"), _price_tiers())
        assert tier.price_per_unit == Decimal("4")

    def test_gap_resolves_to_tier_below(self) -> None:
        """A quantity inside a gap uses the closest tier below it."""
        tiers = [
            PricingTier(min_quantity="0", max_quantity="10", price_per_unit="6"),
            PricingTier(min_quantity="20", price_per_unit="5"),
        ]
        assert resolve_tier(Decimal("15"), tiers).price_per_unit == Decimal("6")

    def test_malformed_table_fails_closed(self) -> None:
        """Lookup never guesses on a malformed table."""
        with pytest.raises(ConfigurationError):
            resolve_tier(Decimal("1"), [], field="per_site_fee_tiers")


class TestSplitGraduated:
    """Test cumulative capacity splits."""

    def test_split_across_two_tiers(self) -> None:
        """8 MW splits into 5 MW in the first tier and 3 MW in the second."""
        slices = split_graduated(Decimal("8"), _graduated_tiers())
        assert [mw for _, mw in slices] == [Decimal("5"), Decimal("3")]

    def test_split_inside_first_tier(self) -> None:
        """Capacity inside the first tier leaves the rest empty."""
        slices = split_graduated(Decimal("3"), _graduated_tiers())
        assert [mw for _, mw in slices] == [Decimal("3"), Decimal("0")]

    @pytest.mark.parametrize("total", ["0", "0.001", "4.999", "5", "5.001", "12.75", "1000"])
    def test_slices_sum_to_total(self, total: str) -> None:
        """Every MW is billed in exactly one tier."""
        tiers = [
            GraduatedMWTier(min_quantity="0", max_quantity="5", price_per_mw="100"),
            GraduatedMWTier(min_quantity="5", max_quantity="10", price_per_mw="90"),
            GraduatedMWTier(min_quantity="10", price_per_mw="80"),
        ]
        slices = split_graduated(Decimal(total), tiers)
        assert sum(mw for _, mw in slices) == Decimal(total)
        assert all(mw >= 0 for _, mw in slices)

    def test_must_start_at_zero(self) -> None:
        """Capacity below the first tier would be unbilled."""
        tiers = [GraduatedMWTier(min_quantity="1", price_per_mw="100")]
        with pytest.raises(ConfigurationError, match="start at 0"):
            split_graduated(Decimal("8"), tiers)

    def test_gap_rejected(self) -> None:
        """Capacity inside a gap would be unbilled."""
        tiers = [
            GraduatedMWTier(min_quantity="0", max_quantity="5", price_per_mw="100"),
            GraduatedMWTier(min_quantity="6", price_per_mw="80"),
        ]
        with pytest.raises(ConfigurationError, match="gap"):
            split_graduated(Decimal("8"), tiers)

    def test_bounded_last_tier_rejected(self) -> None:
        """Capacity above the last maximum would be unbilled."""
        tiers = [GraduatedMWTier(min_quantity="0", max_quantity="5", price_per_mw="100")]
        with pytest.raises(ConfigurationError, match="unbounded"):
            split_graduated(Decimal("8"), tiers)

    def test_negative_total_rejected(self) -> None:
        """Negative capacity is an input error."""
        with pytest.raises(InputValidationError):
            split_graduated(Decimal("-1"), _graduated_tiers())


class TestApplicableDiscount:
    """Test portfolio discount lookup."""

    def test_no_table_means_no_discount(self) -> None:
        """Without tiers the discount is zero."""
        assert applicable_discount(Decimal("500"), []) == (Decimal("0"), None)

    def test_below_first_break(self) -> None:
        """Small portfolios get no discount."""
        percent, _ = applicable_discount(Decimal("49.99"), _discount_tiers())
        assert percent == Decimal("0")

    def test_on_break(self) -> None:
        """The discount applies from the tier minimum."""
        percent, tier = applicable_discount(Decimal("50"), _discount_tiers())
        assert percent == Decimal("5")
        assert tier is not None
        assert tier.min_quantity == Decimal("50")

    def test_largest_tier(self) -> None:
        """The unbounded tier covers the largest portfolios."""
        percent, _ = applicable_discount(Decimal("250"), _discount_tiers())
        assert percent == Decimal("20")

    def test_percent_above_hundred_rejected(self) -> None:
        """A discount over 100% is a malformed table."""
        tiers = [DiscountTier(min_quantity="0", discount_percent="150")]
        with pytest.raises(ConfigurationError, match="0-100"):
            applicable_discount(Decimal("10"), tiers, package_type="pro")
