"""Engine configuration loaded from environment variables.

Environment variables:
    SOLARBILL_DEFAULT_CURRENCY: ISO 4217 code used when params carry none (default: EUR)
    SOLARBILL_MONEY_PRECISION: Decimal places of money figures, 0-6 (default: 2)
    SOLARBILL_CATALOG_PATH: YAML pricing catalog replacing the built-in one (default: unset)
    SOLARBILL_STRICT_DATA: Raise on capability data gaps instead of warning (default: false)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final

from solarbill.models.params import Currency
from solarbill.pricing.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_DEFAULT_CURRENCY: Final[str] = "SOLARBILL_DEFAULT_CURRENCY"
ENV_MONEY_PRECISION: Final[str] = "SOLARBILL_MONEY_PRECISION"
ENV_CATALOG_PATH: Final[str] = "SOLARBILL_CATALOG_PATH"
ENV_STRICT_DATA: Final[str] = "SOLARBILL_STRICT_DATA"

DEFAULT_CURRENCY: Final[Currency] = Currency.EUR
DEFAULT_MONEY_PRECISION: Final[int] = 2
MAX_MONEY_PRECISION: Final[int] = 6

_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class EngineConfig:
    """Pricing engine configuration (immutable).

    Attributes:
        default_currency: Currency of results whose params name none.
        money_precision: Decimal places money figures are quantized to.
        catalog_path: Optional YAML catalog replacing the built-in catalog.
        strict_data_gaps: Raise DataGapError instead of recording a warning.
    """

    default_currency: Currency = DEFAULT_CURRENCY
    money_precision: int = DEFAULT_MONEY_PRECISION
    catalog_path: str | None = None
    strict_data_gaps: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not 0 <= self.money_precision <= MAX_MONEY_PRECISION:
            raise ConfigurationError(
                f"{ENV_MONEY_PRECISION} must be between 0 and {MAX_MONEY_PRECISION}, "
                f"got {self.money_precision}",
                field="money_precision",
            )


def _parse_currency(env_var: str, default: Currency) -> Currency:
    raw = os.environ.get(env_var)
    if raw is None or not raw.strip():
        return default
    try:
        return Currency(raw.strip().upper())
    except ValueError as e:
        supported = sorted(c.value for c in Currency)
        raise ConfigurationError(
            f"{env_var} must be one of {supported}, got '{raw}'", field="default_currency"
        ) from e


def _parse_non_negative_int(env_var: str, default: int) -> int:
    """Parse a non-negative integer from an environment variable.

    Raises:
        ConfigurationError: If value is set but not a non-negative integer.
    """
    raw = os.environ.get(env_var)
    if raw is None:
        return default

    raw = raw.strip()
    if not raw:
        return default

    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{env_var} must be a non-negative integer, got '{raw}'", field="money_precision"
        ) from e

    if value < 0:
        raise ConfigurationError(
            f"{env_var} must be a non-negative integer, got {value}", field="money_precision"
        )

    return value


def _parse_bool(env_var: str, default: bool) -> bool:
    raw = os.environ.get(env_var)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{env_var} must be a boolean (true/false), got '{raw}'", field="strict_data_gaps"
    )


def load_engine_config() -> EngineConfig:
    """Load engine configuration from environment variables.

    Returns:
        EngineConfig with validated values.

    Raises:
        ConfigurationError: If any value is invalid.
    """
    catalog_path = os.environ.get(ENV_CATALOG_PATH, "").strip() or None
    config = EngineConfig(
        default_currency=_parse_currency(ENV_DEFAULT_CURRENCY, DEFAULT_CURRENCY),
        money_precision=_parse_non_negative_int(ENV_MONEY_PRECISION, DEFAULT_MONEY_PRECISION),
        catalog_path=catalog_path,
        strict_data_gaps=_parse_bool(ENV_STRICT_DATA, False),
    )
    logger.debug(
        "Engine config: currency=%s precision=%d catalog=%s strict=%s",
        config.default_currency.value,
        config.money_precision,
        config.catalog_path,
        config.strict_data_gaps,
    )
    return config
