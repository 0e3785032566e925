"""solarbill CLI - deterministic command-line interface for invoice pricing.

Usage:
    solarbill calculate [--input PATH] [--line-items]
    solarbill verify [--input PATH]
    solarbill catalog [--format json|yaml]

Input is JSON read from PATH or stdin. ``calculate`` takes CalculationParams;
``verify`` takes the document ``calculate`` printed, extended with a
``params`` key holding the original input.

Exit codes:
    0: Success / verification passed
    1: Internal error (unexpected)
    2: Rejected input or configuration / verification failed
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from pydantic import ValidationError

from solarbill.config import load_engine_config
from solarbill.models.params import CalculationParams
from solarbill.models.result import CalculationResult
from solarbill.pricing.catalog import DEFAULT_CATALOG, dump_catalog, load_catalog
from solarbill.pricing.engine import InvoiceEngine, InvoiceEngineResult
from solarbill.pricing.errors import (
    ConfigurationError,
    DataGapError,
    InputValidationError,
    InvoiceIntegrityError,
    PricingError,
)
from solarbill.pricing.line_items import build_line_items

ERROR_CODES: dict[type[PricingError], str] = {
    ConfigurationError: "CONFIGURATION_ERROR",
    InputValidationError: "INPUT_VALIDATION_ERROR",
    DataGapError: "DATA_GAP",
    InvoiceIntegrityError: "INTEGRITY_ERROR",
}


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error_result(code: str, message: str, path: str | None = None) -> dict[str, Any]:
    """Create a failed result dict with a single error."""
    return {
        "errors": [{"code": code, "message": message, "path": path or "$"}],
        "pass": False,
    }


def _pricing_error_result(error: PricingError) -> dict[str, Any]:
    code = ERROR_CODES.get(type(error), "PRICING_ERROR")
    result = _make_error_result(code, error.message, error.field)
    result["package_type"] = error.package_type
    return result


def _load_json_input(input_path: str | None) -> tuple[Any, str | None]:
    """Load JSON from file or stdin.

    Returns:
        Tuple of (parsed_data, error_message). If error_message is not None,
        parsed_data should be ignored.
    """
    try:
        if input_path:
            with open(input_path, encoding="utf-8") as f:
                content = f.read()
        else:
            content = sys.stdin.read()

        if not content.strip():
            return None, "Empty input"

        return json.loads(content), None
    except FileNotFoundError:
        return None, f"File not found: {input_path}"
    except json.JSONDecodeError as e:
        return None, f"Invalid JSON: {e}"
    except OSError as e:
        return None, f"Cannot read input: {e}"


def _build_engine() -> InvoiceEngine:
    """Engine configured from the environment.

    Raises:
        ConfigurationError: If configuration or the catalog file is invalid.
    """
    config = load_engine_config()
    catalog = load_catalog(config.catalog_path) if config.catalog_path else DEFAULT_CATALOG
    return InvoiceEngine(catalog=catalog, config=config)


def _engine_result_to_dict(engine_result: InvoiceEngineResult) -> dict[str, Any]:
    return {
        "calculator_hash": engine_result.calculator_hash,
        "catalog_hash": engine_result.catalog_hash,
        "code_version": engine_result.code_version,
        "pass": True,
        "reproducibility_hash": engine_result.reproducibility_hash,
        "result": engine_result.result.model_dump(mode="json"),
    }


def cmd_calculate(args: argparse.Namespace) -> int:
    """Price one invoice and print the result.

    Exit codes:
        0: priced
        2: invalid JSON, invalid params, or a pricing error
    """
    data, error_msg = _load_json_input(args.input)
    if error_msg is not None:
        _output_json(_make_error_result("INVALID_JSON", error_msg))
        return 2

    try:
        params = CalculationParams.model_validate(data)
    except ValidationError as e:
        _output_json(_make_error_result("INVALID_PARAMS", str(e)))
        return 2

    try:
        engine = _build_engine()
        engine_result = engine.run(params)
    except PricingError as e:
        _output_json(_pricing_error_result(e))
        return 2

    output = _engine_result_to_dict(engine_result)
    if args.line_items:
        output["line_items"] = [
            item.model_dump(mode="json") for item in build_line_items(engine_result.result)
        ]
    _output_json(output)
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Check a stored calculation against its params.

    Exit codes:
        0: hash matches
        2: invalid input or hash mismatch
    """
    data, error_msg = _load_json_input(args.input)
    if error_msg is not None:
        _output_json(_make_error_result("INVALID_JSON", error_msg))
        return 2
    if not isinstance(data, dict):
        _output_json(_make_error_result("INVALID_INPUT", "Input must be a JSON object"))
        return 2

    required_keys = ("params", "result", "reproducibility_hash", "code_version")
    missing = [key for key in required_keys if key not in data]
    if missing:
        _output_json(_make_error_result("INVALID_INPUT", f"Missing keys: {missing}"))
        return 2

    try:
        params = CalculationParams.model_validate(data["params"])
        result = CalculationResult.model_validate(data["result"])
    except ValidationError as e:
        _output_json(_make_error_result("INVALID_PARAMS", str(e)))
        return 2

    try:
        engine = _build_engine()
        stored = InvoiceEngineResult(
            result=result,
            calculator_hash=str(data.get("calculator_hash", "")),
            catalog_hash=str(data.get("catalog_hash", "")),
            code_version=str(data["code_version"]),
            reproducibility_hash=str(data["reproducibility_hash"]),
        )
        engine.verify_reproducibility(params, stored)
    except PricingError as e:
        _output_json(_pricing_error_result(e))
        return 2

    _output_json({"errors": [], "pass": True, "reproducibility_hash": stored.reproducibility_hash})
    return 0


def cmd_catalog(args: argparse.Namespace) -> int:
    """Print the active pricing catalog."""
    try:
        config = load_engine_config()
        catalog = load_catalog(config.catalog_path) if config.catalog_path else DEFAULT_CATALOG
    except PricingError as e:
        _output_json(_pricing_error_result(e))
        return 2

    if args.format == "yaml":
        print(dump_catalog(catalog), end="")
    else:
        _output_json(catalog.model_dump(mode="json"))
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="solarbill",
        description="solarbill - invoice pricing for solar asset-management contracts",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    calculate_parser = subparsers.add_parser(
        "calculate",
        help="Price one invoice from CalculationParams JSON",
    )
    calculate_parser.add_argument(
        "--input",
        required=False,
        default=None,
        metavar="PATH",
        help="Path to JSON file (reads from stdin if omitted)",
    )
    calculate_parser.add_argument(
        "--line-items",
        action="store_true",
        default=False,
        help="Include accounting line items in the output",
    )

    verify_parser = subparsers.add_parser(
        "verify",
        help="Verify the reproducibility hash of a stored calculation",
    )
    verify_parser.add_argument(
        "--input",
        required=False,
        default=None,
        metavar="PATH",
        help="Path to JSON file (reads from stdin if omitted)",
    )

    catalog_parser = subparsers.add_parser(
        "catalog",
        help="Print the active pricing catalog",
    )
    catalog_parser.add_argument(
        "--format",
        choices=("json", "yaml"),
        default="json",
        help="Output format (default: json)",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Rejected input or configuration / verification failed
    """
    try:
        parser = create_parser()
        args = parser.parse_args(argv)

        if args.command is None:
            parser.print_help()
            return 0

        if args.command == "calculate":
            return cmd_calculate(args)

        if args.command == "verify":
            return cmd_verify(args)

        if args.command == "catalog":
            return cmd_catalog(args)

        return 0

    except Exception as e:
        # Fail-closed: unexpected errors return exit code 1
        _output_json(_make_error_result("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
