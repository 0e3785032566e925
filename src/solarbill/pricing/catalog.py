"""Default pricing catalog and YAML catalog loading.

The catalog is loaded once, before any calculation runs, and then injected
into the engine as an immutable value. Loading is fail-closed: a missing,
unreadable or malformed file raises ConfigurationError, never an empty
catalog.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from solarbill.models.catalog import (
    AddonDefinition,
    AddonPricingMode,
    ModuleDefinition,
    PricingCatalog,
)
from solarbill.models.tiers import PricingTier
from solarbill.pricing.errors import ConfigurationError

logger = logging.getLogger(__name__)

TECHNICAL_MONITORING_MODULE_ID = "technicalMonitoring"
SATELLITE_DATA_ADDON_ID = "satelliteDataAPI"

DEFAULT_CATALOG = PricingCatalog(
    version="2025.1",
    modules=(
        ModuleDefinition(
            id=TECHNICAL_MONITORING_MODULE_ID,
            name="Technical Monitoring",
            price=Decimal("1000"),
        ),
        ModuleDefinition(id="energySavingsHub", name="Energy Savings Hub", price=Decimal("500")),
        ModuleDefinition(id="stakeholderPortal", name="Stakeholder Portal", price=Decimal("250")),
        ModuleDefinition(id="control", name="Control", price=Decimal("500")),
    ),
    addons=(
        AddonDefinition(
            id="customKPIs",
            name="Custom KPIs",
            pricing_mode=AddonPricingMode.COMPLEXITY,
            low_price=Decimal("200"),
            medium_price=Decimal("1500"),
            high_price=Decimal("10000"),
        ),
        AddonDefinition(
            id="customDashboard",
            name="Custom Dashboard",
            price=Decimal("1000"),
            requires_pro=True,
        ),
        AddonDefinition(
            id="customReport", name="Custom Report", price=Decimal("1500"), requires_pro=True
        ),
        AddonDefinition(
            id="customAlerts", name="Custom Alerts", price=Decimal("150"), requires_pro=True
        ),
        AddonDefinition(
            id="customAPIIntegration", name="Custom API Integration", price=Decimal("3500")
        ),
        AddonDefinition(
            id=SATELLITE_DATA_ADDON_ID,
            name="Satellite Data API Access",
            pricing_mode=AddonPricingMode.TIERED,
            pricing_tiers=(
                PricingTier(
                    min_quantity=Decimal("0"),
                    max_quantity=Decimal("100"),
                    price_per_unit=Decimal("6"),
                    label="0-99 sites",
                ),
                PricingTier(
                    min_quantity=Decimal("100"),
                    max_quantity=Decimal("500"),
                    price_per_unit=Decimal("5"),
                    label="100-499 sites",
                ),
                PricingTier(
                    min_quantity=Decimal("500"),
                    price_per_unit=Decimal("4"),
                    label="500+ sites",
                ),
            ),
            recurring=True,
            auto_activate_field="sites_with_solcast",
            prorate_by_onboarding=True,
        ),
        AddonDefinition(
            id="dataLoggerSetup",
            name="Data Logger Setup",
            pricing_mode=AddonPricingMode.COMPLEXITY,
            low_price=Decimal("1000"),
            medium_price=Decimal("2500"),
            high_price=Decimal("5000"),
        ),
    ),
)


def parse_catalog(data: Any, source: str = "<memory>") -> PricingCatalog:
    """Validate a mapping into a PricingCatalog.

    Raises:
        ConfigurationError: If the data is not a valid catalog.
    """
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Catalog {source} must be a mapping, got {type(data).__name__}", field="catalog"
        )
    try:
        return PricingCatalog.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid catalog {source}: {e}", field="catalog") from e


def load_catalog(path: str | Path) -> PricingCatalog:
    """Load a pricing catalog from a YAML file.

    Args:
        path: Path to the YAML catalog.

    Returns:
        Validated, immutable PricingCatalog.

    Raises:
        ConfigurationError: If the file is missing, unreadable, not valid YAML,
            empty, or fails validation.
    """
    catalog_path = Path(path)
    path_str = str(catalog_path)

    if not catalog_path.is_file():
        raise ConfigurationError(f"Catalog file not found: {path_str}", field="catalog_path")

    try:
        with catalog_path.open("r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read catalog {path_str}: {e}", field="catalog_path"
        ) from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in catalog {path_str}: {e}", field="catalog_path"
        ) from e

    if data is None:
        raise ConfigurationError(f"Catalog file is empty: {path_str}", field="catalog_path")

    catalog = parse_catalog(data, source=path_str)
    logger.info(
        "Loaded catalog %s version=%s modules=%d addons=%d",
        path_str,
        catalog.version,
        len(catalog.modules),
        len(catalog.addons),
    )
    return catalog


def dump_catalog(catalog: PricingCatalog) -> str:
    """Serialize a catalog to YAML that load_catalog accepts."""
    data = catalog.model_dump(mode="json", exclude_defaults=True)
    data["version"] = catalog.version
    return yaml.safe_dump(data, sort_keys=True, allow_unicode=True)
