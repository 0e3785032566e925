"""Invoice pricing engine.

InvoiceEngine.calculate() is a pure function of CalculationParams: it
validates inputs, dispatches to exactly one package calculator, runs the
add-on, retainer, base pricing and discounted-asset layers, and assembles
the result. run() additionally stamps the result with a reproducibility hash
that verify_reproducibility() can check later.

All arithmetic uses Decimal exclusively; no float operations and no clock
reads happen inside a calculation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from solarbill import __version__
from solarbill.config import EngineConfig
from solarbill.models.catalog import PricingCatalog
from solarbill.models.params import CalculationParams, PackageType
from solarbill.models.result import CalculationResult
from solarbill.pricing.addons import calculate_addon_costs
from solarbill.pricing.assembler import assemble_result
from solarbill.pricing.catalog import DEFAULT_CATALOG
from solarbill.pricing.errors import (
    ConfigurationError,
    InputValidationError,
    InvoiceIntegrityError,
)
from solarbill.pricing.layers import (
    DiscountedAssets,
    RetainerCharge,
    price_base_monthly,
    price_discounted_assets,
    price_retainer,
)
from solarbill.pricing.money import ZERO
from solarbill.pricing.packages import (
    PackageCalculatorRegistry,
    PackageCalculatorSpec,
    PricingContext,
    register_all_packages,
)
from solarbill.pricing.packages.registry import canonical_json_for_hash, compute_sha256
from solarbill.pricing.proration import (
    effective_multiplier,
    first_invoice_date,
    invoice_period_label,
    is_prorated,
    period_months,
)

logger = logging.getLogger(__name__)

_NON_NEGATIVE_FIELDS = (
    "total_mw",
    "minimum_charge",
    "base_monthly_price",
    "retainer_hours",
    "retainer_hourly_rate",
    "retainer_minimum_value",
    "site_size_threshold_kwp",
    "below_threshold_price_per_mw",
    "above_threshold_price_per_mw",
    "annual_fee_per_site",
    "onboarding_fee_per_site",
)

_NON_NEGATIVE_OPTIONAL_FIELDS = (
    "minimum_annual_value",
    "frequency_multiplier",
    "ongrid_price_per_mw",
    "hybrid_price_per_mw",
    "max_mw",
)


@dataclass(frozen=True)
class InvoiceEngineResult:
    """Result from InvoiceEngine.run() with its provenance hashes."""

    result: CalculationResult
    calculator_hash: str
    catalog_hash: str
    code_version: str
    reproducibility_hash: str


class InvoiceEngine:
    """Deterministic invoice pricing engine.

    The catalog and registry are injected and never mutated; the same engine
    instance can price many contracts concurrently.
    """

    def __init__(
        self,
        catalog: PricingCatalog | None = None,
        registry: PackageCalculatorRegistry | None = None,
        config: EngineConfig | None = None,
        code_version: str | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            catalog: Pricing catalog. Defaults to the built-in catalog.
            registry: Package calculator registry. Defaults to the singleton
                with every package registered.
            config: Engine configuration. Defaults to EngineConfig().
            code_version: Code version string. Defaults to package __version__.
        """
        self._catalog = catalog or DEFAULT_CATALOG
        self._registry = registry or register_all_packages()
        self._config = config or EngineConfig()
        self._code_version = code_version or __version__

    @property
    def catalog(self) -> PricingCatalog:
        return self._catalog

    @property
    def config(self) -> EngineConfig:
        return self._config

    def calculate(self, params: CalculationParams) -> CalculationResult:
        """Price one invoice.

        Raises:
            ConfigurationError: Unknown package type or malformed tier table.
            InputValidationError: Negative amounts, unknown module or add-on IDs.
            DataGapError: Missing capability data in strict mode.
        """
        package_type = self._resolve_package_type(params.package_type)
        spec = self._get_calculator(package_type)
        self._validate_inputs(params, package_type)

        ctx = PricingContext(
            params=params,
            catalog=self._catalog,
            package_type=package_type,
            multiplier=effective_multiplier(params),
            period_months=period_months(params.billing_frequency),
            precision=self._config.money_precision,
            strict_data=self._config.strict_data_gaps,
        )
        logger.debug(
            "Dispatching package_type=%s calculator=%s multiplier=%s",
            package_type.value,
            spec.calculator_id,
            ctx.multiplier,
        )

        currency = (params.currency or self._config.default_currency).value
        invoice_period = self._invoice_period(params)

        if not spec.billable:
            charges = spec.fn(ctx)
            return assemble_result(
                ctx,
                charges,
                addon_costs=[],
                discounted=DiscountedAssets(),
                retainer=RetainerCharge(cost=ZERO, calculated_cost=ZERO, minimum_applied=False),
                base_pricing_cost=ZERO,
                currency=currency,
                invoice_period=invoice_period,
            )

        discounted = price_discounted_assets(ctx, spec.supports_asset_overrides)
        ctx.excluded_asset_ids = discounted.excluded_asset_ids
        ctx.excluded_mw = discounted.excluded_mw

        charges = spec.fn(ctx)
        addon_costs = calculate_addon_costs(ctx)
        retainer = price_retainer(ctx)
        base_pricing_cost = price_base_monthly(ctx)

        return assemble_result(
            ctx,
            charges,
            addon_costs=addon_costs,
            discounted=discounted,
            retainer=retainer,
            base_pricing_cost=base_pricing_cost,
            currency=currency,
            invoice_period=invoice_period,
        )

    def run(self, params: CalculationParams) -> InvoiceEngineResult:
        """Price one invoice and stamp it with a reproducibility hash."""
        result = self.calculate(params)
        spec = self._get_calculator(PackageType(result.package_type))
        catalog_hash = self.catalog_hash()
        reproducibility_hash = self._compute_reproducibility_hash(
            calculator_hash=spec.calculator_hash,
            catalog_hash=catalog_hash,
            code_version=self._code_version,
            params=params,
            result=result,
        )
        return InvoiceEngineResult(
            result=result,
            calculator_hash=spec.calculator_hash,
            catalog_hash=catalog_hash,
            code_version=self._code_version,
            reproducibility_hash=reproducibility_hash,
        )

    def verify_reproducibility(
        self,
        params: CalculationParams,
        engine_result: InvoiceEngineResult,
    ) -> None:
        """Recompute the hash of a stored result and compare.

        Raises:
            InvoiceIntegrityError: If the stored result no longer matches its
                inputs, calculator or catalog.
        """
        spec = self._get_calculator(self._resolve_package_type(params.package_type))
        computed_hash = self._compute_reproducibility_hash(
            calculator_hash=spec.calculator_hash,
            catalog_hash=self.catalog_hash(),
            code_version=engine_result.code_version,
            params=params,
            result=engine_result.result,
        )
        if computed_hash != engine_result.reproducibility_hash:
            raise InvoiceIntegrityError(
                expected_hash=engine_result.reproducibility_hash,
                computed_hash=computed_hash,
                package_type=params.package_type,
            )

    def catalog_hash(self) -> str:
        return compute_sha256(canonical_json_for_hash(self._catalog.model_dump(mode="json")))

    def _resolve_package_type(self, raw: str) -> PackageType:
        try:
            return PackageType(raw)
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown package type '{raw}'", package_type=raw, field="package_type"
            ) from e

    def _get_calculator(self, package_type: PackageType) -> PackageCalculatorSpec:
        try:
            return self._registry.get_or_raise(package_type)
        except KeyError as e:
            raise ConfigurationError(
                f"No calculator registered for package type '{package_type.value}'",
                package_type=package_type.value,
                field="package_type",
            ) from e

    def _validate_inputs(self, params: CalculationParams, package_type: PackageType) -> None:
        """Fail fast on negative figures and unknown module IDs.

        Raises:
            InputValidationError: If any check fails.
        """
        for name in _NON_NEGATIVE_FIELDS:
            self._require_non_negative(getattr(params, name), name, package_type)
        for name in _NON_NEGATIVE_OPTIONAL_FIELDS:
            value = getattr(params, name)
            if value is not None:
                self._require_non_negative(value, name, package_type)
        for module_id, rate in params.custom_pricing.items():
            self._require_non_negative(rate, f"custom_pricing.{module_id}", package_type)
        for asset in params.assets:
            self._require_non_negative(
                asset.total_mw, f"capabilities.assets.{asset.asset_id}.total_mw", package_type
            )

        for module_id in params.selected_modules:
            module = self._catalog.get_module(module_id)
            if module is None:
                raise InputValidationError(
                    f"Unknown module '{module_id}'",
                    package_type=package_type.value,
                    field="selected_modules",
                )
            if not module.available:
                raise InputValidationError(
                    f"Module '{module_id}' is not available for sale",
                    package_type=package_type.value,
                    field="selected_modules",
                )

    @staticmethod
    def _require_non_negative(value: Decimal, field: str, package_type: PackageType) -> None:
        if value < ZERO:
            raise InputValidationError(
                f"{field} must be non-negative, got {value}",
                package_type=package_type.value,
                field=field,
            )

    @staticmethod
    def _invoice_period(params: CalculationParams) -> str:
        if is_prorated(params):
            return invoice_period_label(
                params.billing_frequency,
                invoice_date=first_invoice_date(params),
                signed_date=params.contract_signed_date,
            )
        return invoice_period_label(
            params.billing_frequency,
            period_start=params.period_start,
            period_end=params.period_end,
            invoice_date=params.invoice_date,
        )

    def _compute_reproducibility_hash(
        self,
        calculator_hash: str,
        catalog_hash: str,
        code_version: str,
        params: CalculationParams,
        result: CalculationResult,
    ) -> str:
        """Hash of canonical JSON over every deterministic input and output."""
        hash_input = {
            "calculator_hash": calculator_hash,
            "catalog_hash": catalog_hash,
            "code_version": code_version,
            "params": params.model_dump(mode="json"),
            "result": result.model_dump(mode="json"),
        }
        return compute_sha256(canonical_json_for_hash(hash_input))
