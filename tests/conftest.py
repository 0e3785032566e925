"""Pytest configuration and fixtures for solarbill tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from solarbill.config import (
    ENV_CATALOG_PATH,
    ENV_DEFAULT_CURRENCY,
    ENV_MONEY_PRECISION,
    ENV_STRICT_DATA,
    EngineConfig,
)
from solarbill.models.params import AssetCapability, CapabilitySnapshot
from solarbill.pricing.catalog import DEFAULT_CATALOG
from solarbill.pricing.engine import InvoiceEngine
from solarbill.pricing.packages import PackageCalculatorRegistry, register_all_packages


@pytest.fixture(autouse=True)
def clean_solarbill_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove solarbill environment variables so every test starts from defaults.

    Tests that exercise configuration set the variables they need.
    """
    for env_var in (ENV_DEFAULT_CURRENCY, ENV_MONEY_PRECISION, ENV_CATALOG_PATH, ENV_STRICT_DATA):
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def registry() -> PackageCalculatorRegistry:
    """Create a fresh package registry with every calculator registered."""
    PackageCalculatorRegistry.reset_instance()
    reg = PackageCalculatorRegistry()
    register_all_packages(reg)
    return reg


@pytest.fixture
def engine(registry: PackageCalculatorRegistry) -> InvoiceEngine:
    """Create an engine with the default catalog and the test registry."""
    return InvoiceEngine(
        catalog=DEFAULT_CATALOG,
        registry=registry,
        config=EngineConfig(),
        code_version="test-1.0.0",
    )


@pytest.fixture
def strict_engine(registry: PackageCalculatorRegistry) -> InvoiceEngine:
    """Engine that raises on capability data gaps."""
    return InvoiceEngine(
        catalog=DEFAULT_CATALOG,
        registry=registry,
        config=EngineConfig(strict_data_gaps=True),
        code_version="test-1.0.0",
    )


@pytest.fixture
def mixed_portfolio() -> CapabilitySnapshot:
    """Four assets: two small on-grid sites, one large on-grid, one large hybrid.

    Aggregate solcast counts are left unset so the satellite add-on is not
    auto-activated.
    """
    return CapabilitySnapshot(
        ongrid_total_mw=Decimal("5.15"),
        hybrid_total_mw=Decimal("3"),
        site_count=4,
        assets=[
            AssetCapability(
                asset_id="site-a",
                asset_name="Site A",
                total_mw=Decimal("0.05"),
                has_solcast=True,
                solcast_onboarding_date=date(2026, 2, 10),
            ),
            AssetCapability(asset_id="site-b", asset_name="Site B", total_mw=Decimal("0.1")),
            AssetCapability(
                asset_id="site-c",
                asset_name="Site C",
                total_mw=Decimal("5"),
                has_solcast=True,
                solcast_onboarding_date=date(2025, 6, 1),
            ),
            AssetCapability(
                asset_id="site-d", asset_name="Site D", total_mw=Decimal("3"), is_hybrid=True
            ),
        ],
    )
