"""Money formatting helpers shared by the digest modules."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal

CurrencyTotals = dict[str, Decimal]


def format_currency(
    amount: Decimal,
    currency: str,
    quantize: Decimal = Decimal("0.01"),
) -> str:
    """Format an amount the Czech way: ``25 000,00 CZK``."""
    rounded = amount.quantize(quantize, rounding=ROUND_HALF_UP)
    text = f"{rounded:,.2f}".replace(",", " ").replace(".", ",")
    return f"{text} {currency}"


def add_amount(totals: CurrencyTotals, currency: str, amount: Decimal) -> None:
    """Accumulate ``amount`` into ``totals``, keeping first-seen currency order."""
    totals[currency] = totals.get(currency, Decimal("0")) + amount


def format_totals(totals: Mapping[str, Decimal]) -> dict[str, str]:
    return {currency: format_currency(total, currency) for currency, total in totals.items()}
