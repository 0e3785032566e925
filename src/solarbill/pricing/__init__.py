"""solarbill invoice pricing engine.

This package provides:
- InvoiceEngine (solarbill.pricing.engine): price an invoice with a reproducibility hash
- Package calculators (solarbill.pricing.packages): one versioned strategy per package type
- Exceptions: typed, attributable failures
"""

from solarbill.pricing.errors import (
    ConfigurationError,
    DataGapError,
    InputValidationError,
    InvoiceIntegrityError,
    PricingError,
)

__all__ = [
    "ConfigurationError",
    "DataGapError",
    "InputValidationError",
    "InvoiceIntegrityError",
    "PricingError",
]
