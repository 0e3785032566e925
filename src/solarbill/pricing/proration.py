"""Proration and frequency engine.

Converts a billing frequency and the optional contract/period dates into the
multiplier applied to annualized rates, and produces the invoice period
display text. All results are Decimal; nothing here reads the clock.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import Decimal
from typing import Final

from solarbill.models.params import BillingFrequency, CalculationParams
from solarbill.pricing.money import MONTHS_PER_YEAR, ONE, ZERO

FREQUENCY_MULTIPLIERS: Final[dict[BillingFrequency, Decimal]] = {
    BillingFrequency.MONTHLY: ONE / MONTHS_PER_YEAR,
    BillingFrequency.QUARTERLY: Decimal("0.25"),
    BillingFrequency.BIANNUAL: Decimal("0.5"),
    BillingFrequency.ANNUAL: ONE,
}

PERIOD_MONTHS: Final[dict[BillingFrequency, int]] = {
    BillingFrequency.MONTHLY: 1,
    BillingFrequency.QUARTERLY: 3,
    BillingFrequency.BIANNUAL: 6,
    BillingFrequency.ANNUAL: 12,
}

STANDARD_PERIOD_DAYS: Final[dict[BillingFrequency, int]] = {
    BillingFrequency.MONTHLY: 30,
    BillingFrequency.QUARTERLY: 91,
    BillingFrequency.BIANNUAL: 182,
    BillingFrequency.ANNUAL: 365,
}

_MONTH_ABBR: Final[tuple[str, ...]] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def frequency_multiplier(frequency: BillingFrequency) -> Decimal:
    """Fraction of a year covered by one invoice of this frequency."""
    return FREQUENCY_MULTIPLIERS[frequency]


def period_months(frequency: BillingFrequency) -> int:
    """Whole months covered by one invoice of this frequency."""
    return PERIOD_MONTHS[frequency]


def proration_multiplier(
    signed_date: date,
    first_invoice_date: date,
    frequency: BillingFrequency,
) -> Decimal:
    """Fraction of a standard period elapsed between signing and the first invoice.

    Formula: min(1, days_between / standard_period_days)

    Args:
        signed_date: Contract signing date.
        first_invoice_date: Date of the contract's first invoice.
        frequency: Billing frequency selecting the standard period length.

    Returns:
        Decimal in [0, 1]. Zero when the invoice date is on or before signing.
    """
    days = (first_invoice_date - signed_date).days
    if days <= 0:
        return ZERO
    fraction = Decimal(days) / Decimal(STANDARD_PERIOD_DAYS[frequency])
    return min(ONE, fraction)


def first_invoice_date(params: CalculationParams) -> date | None:
    return params.invoice_date or params.period_end


def is_prorated(params: CalculationParams) -> bool:
    """True when the first-invoice proration rule applies to these params."""
    return (
        params.frequency_multiplier is None
        and params.is_first_invoice
        and params.contract_signed_date is not None
        and first_invoice_date(params) is not None
    )


def effective_multiplier(params: CalculationParams) -> Decimal:
    """Multiplier applied to annualized rates for this invoice.

    A precomputed multiplier always wins. For a contract's first invoice the
    elapsed fraction of the standard period replaces the plain frequency
    multiplier; the two are never stacked.
    """
    if params.frequency_multiplier is not None:
        return params.frequency_multiplier
    plain = frequency_multiplier(params.billing_frequency)
    signed = params.contract_signed_date
    invoice_on = first_invoice_date(params)
    if params.is_first_invoice and signed is not None and invoice_on is not None:
        return proration_multiplier(signed, invoice_on, params.billing_frequency)
    return plain


def format_day(d: date) -> str:
    return f"{d.day:02d} {_MONTH_ABBR[d.month - 1]} {d.year}"


def _last_day_of_month(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _calendar_period_label(frequency: BillingFrequency, start: date) -> str:
    if frequency == BillingFrequency.MONTHLY:
        return f"{_MONTH_ABBR[start.month - 1]} {start.year}"
    if frequency == BillingFrequency.QUARTERLY:
        return f"Q{(start.month - 1) // 3 + 1} {start.year}"
    if frequency == BillingFrequency.BIANNUAL:
        return f"H{(start.month - 1) // 6 + 1} {start.year}"
    return str(start.year)


def _calendar_period_start(frequency: BillingFrequency, d: date) -> date:
    span = PERIOD_MONTHS[frequency]
    month = ((d.month - 1) // span) * span + 1
    return date(d.year, month, 1)


def _is_calendar_aligned(frequency: BillingFrequency, start: date, end: date) -> bool:
    if start != _calendar_period_start(frequency, start):
        return False
    end_year, end_month = _add_months(start.year, start.month, PERIOD_MONTHS[frequency] - 1)
    return end == _last_day_of_month(end_year, end_month)


def invoice_period_label(
    frequency: BillingFrequency,
    period_start: date | None = None,
    period_end: date | None = None,
    invoice_date: date | None = None,
    signed_date: date | None = None,
) -> str:
    """Display text for the period an invoice covers.

    Calendar-aligned periods render as ``Mar 2026``, ``Q1 2026``, ``H1 2026``
    or ``2026``; anything else as ``01 Jan 2026 - 31 Mar 2026``. When
    ``signed_date`` is given (prorated first invoice) the range runs from
    signing to the invoice date.
    """
    if signed_date is not None and invoice_date is not None:
        return f"{format_day(signed_date)} - {format_day(invoice_date)}"
    if period_start is not None and period_end is not None:
        if _is_calendar_aligned(frequency, period_start, period_end):
            return _calendar_period_label(frequency, period_start)
        return f"{format_day(period_start)} - {format_day(period_end)}"
    anchor = period_start or invoice_date
    if anchor is None:
        return ""
    return _calendar_period_label(frequency, _calendar_period_start(frequency, anchor))


def months_in_period(period_start: date, period_end: date) -> list[date]:
    """First day of every calendar month the period touches, in order."""
    if period_end < period_start:
        return []
    months: list[date] = []
    year, month = period_start.year, period_start.month
    while (year, month) <= (period_end.year, period_end.month):
        months.append(date(year, month, 1))
        year, month = _add_months(year, month, 1)
    return months


def active_months(
    period_start: date,
    period_end: date,
    active_from: date | None,
) -> int:
    """Months of the period in which something active from ``active_from`` is billable.

    A month counts when activation happened on or before its last day.
    Unknown activation counts as active for the whole period.
    """
    count = 0
    for month_start in months_in_period(period_start, period_end):
        month_end = _last_day_of_month(month_start.year, month_start.month)
        if active_from is None or active_from <= month_end:
            count += 1
    return count
