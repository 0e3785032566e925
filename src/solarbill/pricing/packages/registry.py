"""Package calculator registry with versioned specifications and stable hashing.

Each package type maps to exactly one PackageCalculatorSpec. The spec's hash
goes into every result's reproducibility hash, so changing a calculator's
behaviour means registering a new version, not editing the old one in place.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from solarbill.models.params import PackageType

if TYPE_CHECKING:
    from solarbill.pricing.packages.context import PackageCharges, PricingContext


@dataclass(frozen=True)
class PackageCalculatorSpec:
    """Specification for one package pricing strategy.

    Attributes:
        package_type: The package this calculator prices.
        version: Semantic version of the calculator (e.g., "1.0.0").
        calculator_id: Unique identifier of the pricing rule.
        fn: The calculator (PricingContext -> PackageCharges).
        supports_asset_overrides: Whether discounted-asset overrides can be
            carved out of this package's capacity or site counts.
        billable: False for packages that never produce an invoice amount;
            the add-on, retainer and base pricing layers are skipped.
    """

    package_type: PackageType
    version: str
    calculator_id: str
    fn: Callable[[PricingContext], PackageCharges]
    supports_asset_overrides: bool = True
    billable: bool = True

    @property
    def calculator_hash(self) -> str:
        """Stable SHA256 hash of {package_type, calculator_id, calculator_version}."""
        spec_dict = {
            "calculator_id": self.calculator_id,
            "calculator_version": self.version,
            "package_type": self.package_type.value,
        }
        canonical_json = json.dumps(spec_dict, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


class PackageCalculatorRegistry:
    """Registry of versioned package calculators.

    Calculators are immutable once registered.
    """

    _instance: PackageCalculatorRegistry | None = None
    _calculators: dict[PackageType, PackageCalculatorSpec]

    def __new__(cls) -> PackageCalculatorRegistry:
        """Singleton pattern for global registry."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._calculators = {}
        return cls._instance

    def register(self, spec: PackageCalculatorSpec) -> None:
        """Register a calculator.

        Raises:
            ValueError: If a calculator for this package type is already registered.
        """
        if spec.package_type in self._calculators:
            raise ValueError(
                f"Calculator for {spec.package_type.value} already registered. "
                "Create a new version instead of overwriting."
            )
        self._calculators[spec.package_type] = spec

    def get(self, package_type: PackageType) -> PackageCalculatorSpec | None:
        return self._calculators.get(package_type)

    def get_or_raise(self, package_type: PackageType) -> PackageCalculatorSpec:
        """Get the calculator or raise if not found.

        Raises:
            KeyError: If no calculator is registered for this package type.
        """
        spec = self.get(package_type)
        if spec is None:
            raise KeyError(f"No calculator registered for package_type: {package_type.value}")
        return spec

    def list_registered(self) -> list[PackageType]:
        """List all registered package types."""
        return list(self._calculators.keys())

    def clear(self) -> None:
        """Clear all registered calculators. For testing only."""
        self._calculators.clear()

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. For testing only."""
        cls._instance = None


def canonical_json_for_hash(obj: Any) -> str:
    """Serialize object to canonical JSON for hashing.

    Rules:
    - All keys sorted alphabetically (recursive)
    - Decimal values serialized as strings
    - Enums serialized by value
    - No whitespace
    """

    def normalize(value: Any) -> Any:
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, dict):
            return {k: normalize(v) for k, v in sorted(value.items())}
        if isinstance(value, (list, tuple)):
            return [normalize(item) for item in value]
        if hasattr(value, "value"):  # Enum
            return value.value
        return value

    normalized = normalize(obj)
    return json.dumps(normalized, sort_keys=True, separators=(",", ":"))


def compute_sha256(data: str) -> str:
    """Lowercase hexadecimal SHA256 of a UTF-8 string."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
