"""Shared field types for solarbill models.

All numeric pricing values are Decimal. Floats and ints arriving from JSON or
from callers are converted through their string form so that ``0.1`` becomes
``Decimal("0.1")`` rather than its binary approximation.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Annotated

from pydantic import BeforeValidator


def coerce_decimal(v: object) -> object:
    """Coerce int/float/str to Decimal; leave None and Decimal untouched."""
    if v is None or isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        raise ValueError("Cannot convert bool to Decimal")
    if isinstance(v, (int, float, str)):
        try:
            return Decimal(str(v).strip())
        except InvalidOperation as e:
            raise ValueError(f"Cannot convert {v!r} to Decimal") from e
    raise ValueError(f"Cannot convert {type(v).__name__} to Decimal")


DecimalValue = Annotated[Decimal, BeforeValidator(coerce_decimal)]
OptionalDecimal = Annotated[Decimal | None, BeforeValidator(coerce_decimal)]
