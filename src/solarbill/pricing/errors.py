"""Typed exceptions for the pricing engine.

Every error names the package type and input field it concerns so that a
failed invoice in a batch run can be traced to a contract and a figure.
"""

from __future__ import annotations


class PricingError(Exception):
    """Base class for all pricing engine failures."""

    def __init__(
        self,
        message: str,
        package_type: str | None = None,
        field: str | None = None,
    ) -> None:
        self.message = message
        self.package_type = package_type
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, str | None]:
        return {
            "error": type(self).__name__,
            "field": self.field,
            "message": self.message,
            "package_type": self.package_type,
        }


class ConfigurationError(PricingError):
    """Raised for an unknown package type, a malformed tier table or bad config.

    Fatal: the calculation is aborted rather than guessed.
    """


class InputValidationError(PricingError):
    """Raised when invoice inputs are invalid (negative amounts, unknown IDs).

    Fatal for the invoice; batch callers skip or flag the contract.
    """


class DataGapError(PricingError):
    """Raised for a capability data gap when strict data mode is enabled.

    In the default mode the same condition is recorded as a CalculationWarning
    and the calculation falls back to aggregate figures.
    """


class InvoiceIntegrityError(PricingError):
    """Raised when reproducibility hash verification fails.

    Indicates the stored result no longer matches its inputs.
    """

    def __init__(
        self,
        expected_hash: str,
        computed_hash: str,
        package_type: str | None = None,
    ) -> None:
        self.expected_hash = expected_hash
        self.computed_hash = computed_hash
        super().__init__(
            f"Integrity check failed. "
            f"Expected hash: {expected_hash[:16]}..., "
            f"Computed hash: {computed_hash[:16]}...",
            package_type=package_type,
            field="reproducibility_hash",
        )
