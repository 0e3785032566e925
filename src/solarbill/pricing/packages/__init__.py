"""Package calculators and their versioned registry.

Exactly one calculator applies per calculation, selected by package type.
"""

from solarbill.pricing.packages.context import PackageCharges, PricingContext
from solarbill.pricing.packages.core import register_core_packages
from solarbill.pricing.packages.elum import register_elum_packages
from solarbill.pricing.packages.per_site import register_per_site_packages
from solarbill.pricing.packages.registry import (
    PackageCalculatorRegistry,
    PackageCalculatorSpec,
)


def register_all_packages(
    registry: PackageCalculatorRegistry | None = None,
) -> PackageCalculatorRegistry:
    """Register every package calculator.

    Args:
        registry: Optional registry to use. If None, uses the singleton.

    Returns:
        The registry with all calculators registered.
    """
    registry = register_core_packages(registry)
    register_elum_packages(registry)
    register_per_site_packages(registry)
    return registry


__all__ = [
    "PackageCalculatorRegistry",
    "PackageCalculatorSpec",
    "PackageCharges",
    "PricingContext",
    "register_all_packages",
    "register_core_packages",
    "register_elum_packages",
    "register_per_site_packages",
]
