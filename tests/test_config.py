"""Tests for engine configuration loaded from environment variables."""

from __future__ import annotations

import pytest

from solarbill.config import (
    ENV_CATALOG_PATH,
    ENV_DEFAULT_CURRENCY,
    ENV_MONEY_PRECISION,
    ENV_STRICT_DATA,
    EngineConfig,
    load_engine_config,
)
from solarbill.models.params import Currency
from solarbill.pricing.errors import ConfigurationError


class TestDefaults:
    """Test configuration without environment variables."""

    def test_defaults(self) -> None:
        """Unset variables give the documented defaults."""
        config = load_engine_config()

        assert config == EngineConfig()
        assert config.default_currency == Currency.EUR
        assert config.money_precision == 2
        assert config.catalog_path is None
        assert config.strict_data_gaps is False

    def test_blank_values_use_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Whitespace-only values count as unset."""
        monkeypatch.setenv(ENV_DEFAULT_CURRENCY, "  ")
        monkeypatch.setenv(ENV_MONEY_PRECISION, "")
        monkeypatch.setenv(ENV_CATALOG_PATH, " ")

        assert load_engine_config() == EngineConfig()


class TestCurrency:
    """Test SOLARBILL_DEFAULT_CURRENCY."""

    def test_case_insensitive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Currency codes are normalized to upper case."""
        monkeypatch.setenv(ENV_DEFAULT_CURRENCY, "usd")
        assert load_engine_config().default_currency == Currency.USD

    def test_unknown_currency(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unsupported currencies are configuration errors."""
        monkeypatch.setenv(ENV_DEFAULT_CURRENCY, "DOGE")
        with pytest.raises(ConfigurationError, match=ENV_DEFAULT_CURRENCY) as exc_info:
            load_engine_config()

        assert exc_info.value.field == "default_currency"


class TestMoneyPrecision:
    """Test SOLARBILL_MONEY_PRECISION."""

    def test_valid_precision(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """An integer precision is accepted."""
        monkeypatch.setenv(ENV_MONEY_PRECISION, "3")
        assert load_engine_config().money_precision == 3

    @pytest.mark.parametrize("raw", ["abc", "2.5", "-1", "7"])
    def test_invalid_precision(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        """Non-integers and values outside 0-6 are rejected."""
        monkeypatch.setenv(ENV_MONEY_PRECISION, raw)
        with pytest.raises(ConfigurationError) as exc_info:
            load_engine_config()

        assert exc_info.value.field == "money_precision"

    def test_direct_construction_validated(self) -> None:
        """EngineConfig validates precision even when built directly."""
        with pytest.raises(ConfigurationError):
            EngineConfig(money_precision=10)


class TestStrictDataAndCatalog:
    """Test SOLARBILL_STRICT_DATA and SOLARBILL_CATALOG_PATH."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("true", True), ("1", True), ("YES", True), ("false", False), ("off", False)],
    )
    def test_strict_data_values(
        self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool
    ) -> None:
        """Common boolean spellings are accepted."""
        monkeypatch.setenv(ENV_STRICT_DATA, raw)
        assert load_engine_config().strict_data_gaps is expected

    def test_strict_data_invalid(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Anything else is rejected rather than guessed."""
        monkeypatch.setenv(ENV_STRICT_DATA, "maybe")
        with pytest.raises(ConfigurationError, match=ENV_STRICT_DATA):
            load_engine_config()

    def test_catalog_path(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The catalog path is passed through stripped."""
        monkeypatch.setenv(ENV_CATALOG_PATH, " /etc/solarbill/catalog.yaml ")
        assert load_engine_config().catalog_path == "/etc/solarbill/catalog.yaml"
