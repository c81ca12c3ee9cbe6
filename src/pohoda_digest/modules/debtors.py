"""Overdue receivables analysis: aging buckets and top debtors."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from pohoda_digest.formatting import CurrencyTotals, add_amount, format_currency, format_totals
from pohoda_digest.models import DEFAULT_CURRENCY, InvoiceRecord, Period
from pohoda_digest.modules.base import DigestModule
from pohoda_digest.sources.base import DataSource

TOP_DEBTORS = 20
INVOICES_PER_DEBTOR = 5


class AgeBucket(str, Enum):
    """Overdue-day ranges, upper bound inclusive."""

    DAYS_1_30 = "1-30"
    DAYS_31_60 = "31-60"
    DAYS_61_90 = "61-90"
    DAYS_90_PLUS = "90+"

    @classmethod
    def for_days(cls, overdue_days: int) -> AgeBucket:
        if overdue_days <= 30:
            return cls.DAYS_1_30
        if overdue_days <= 60:
            return cls.DAYS_31_60
        if overdue_days <= 90:
            return cls.DAYS_61_90
        return cls.DAYS_90_PLUS


def overdue_days(due_date: date | None, as_of: date) -> int:
    """Whole days past due as of ``as_of``; 0 when not due yet or unknown."""
    if due_date is None:
        return 0
    return max(0, (as_of - due_date).days)


@dataclass
class AgeGroup:
    """Overdue invoices falling into one AgeBucket."""

    count: int = 0
    totals: CurrencyTotals = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "totals": format_totals(self.totals)}


@dataclass(frozen=True)
class OverdueInvoice:
    """One invoice shown under its debtor."""

    number: str
    amount: Decimal
    currency: str
    due_date: date | None
    overdue_days: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "number": self.number,
            "amount": format_currency(self.amount, self.currency),
            "due_date": self.due_date.isoformat() if self.due_date else "",
            "overdue_days": self.overdue_days,
        }


@dataclass
class DebtorRollup:
    """Running totals for one debtor."""

    name: str
    currency: str
    invoice_count: int = 0
    total_amount: Decimal = Decimal("0")
    oldest_overdue_days: int = 0
    invoices: deque[OverdueInvoice] = field(
        default_factory=lambda: deque(maxlen=INVOICES_PER_DEBTOR)
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "invoice_count": self.invoice_count,
            "total_amount": format_currency(self.total_amount, self.currency),
            "oldest_overdue_days": self.oldest_overdue_days,
            "invoices": [invoice.to_dict() for invoice in self.invoices],
        }


@dataclass
class DebtorAnalysis:
    """Result of one DebtorAggregator pass."""

    as_of_date: date
    total_overdue_count: int = 0
    currencies: list[str] = field(default_factory=list)
    currency_totals: CurrencyTotals = field(default_factory=dict)
    by_age_group: dict[AgeBucket, AgeGroup] = field(default_factory=dict)
    debtor_count: int = 0
    top_debtors: list[DebtorRollup] = field(default_factory=list)

    @property
    def main_currency(self) -> str:
        # First currency encountered, not the one with the largest total.
        return self.currencies[0] if self.currencies else DEFAULT_CURRENCY

    @property
    def total_overdue_amount(self) -> Decimal:
        return self.currency_totals.get(self.main_currency, Decimal("0"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total_overdue_count": self.total_overdue_count,
                "total_overdue_amount": format_currency(
                    self.total_overdue_amount, self.main_currency
                ),
                "currencies": list(self.currencies),
                "debtor_count": self.debtor_count,
                "as_of_date": self.as_of_date.isoformat(),
            },
            "by_currency": format_totals(self.currency_totals),
            "by_age_groups": {
                bucket.value: group.to_dict() for bucket, group in self.by_age_group.items()
            },
            "top_debtors": [debtor.to_dict() for debtor in self.top_debtors],
        }


class DebtorAggregator:
    """Groups overdue invoices by currency, age bucket and debtor in one pass."""

    def __init__(self, top_n: int = TOP_DEBTORS, invoices_per_debtor: int = INVOICES_PER_DEBTOR):
        self.top_n = top_n
        self.invoices_per_debtor = invoices_per_debtor

    def analyze(self, records: Iterable[InvoiceRecord], as_of: date) -> DebtorAnalysis:
        result = DebtorAnalysis(as_of_date=as_of)
        debtors: dict[str, DebtorRollup] = {}

        for record in records:
            if not result.by_age_group:
                result.by_age_group = {bucket: AgeGroup() for bucket in AgeBucket}
            result.total_overdue_count += 1

            if record.currency not in result.currencies:
                result.currencies.append(record.currency)

            days = overdue_days(record.due_date, as_of)
            add_amount(result.currency_totals, record.currency, record.amount)

            group = result.by_age_group[AgeBucket.for_days(days)]
            group.count += 1
            add_amount(group.totals, record.currency, record.amount)

            debtor = debtors.get(record.customer_name)
            if debtor is None:
                debtor = debtors[record.customer_name] = DebtorRollup(
                    name=record.customer_name,
                    currency=record.currency,
                    invoices=deque(maxlen=self.invoices_per_debtor),
                )
            debtor.invoice_count += 1
            debtor.total_amount += record.amount
            debtor.currency = record.currency
            debtor.oldest_overdue_days = max(debtor.oldest_overdue_days, days)
            debtor.invoices.append(
                OverdueInvoice(
                    number=record.number,
                    amount=record.amount,
                    currency=record.currency,
                    due_date=record.due_date,
                    overdue_days=days,
                )
            )

        result.debtor_count = len(debtors)
        ranked = sorted(debtors.values(), key=lambda d: d.total_amount, reverse=True)
        result.top_debtors = ranked[: self.top_n]
        return result


class DebtorsModule(DigestModule):
    """Overdue receivables as of the last day of the period."""

    name = "debtors"
    heading = "Debtors Analysis"
    description = "Analysis of overdue receivables and customer payment behavior"
    required_features = ("overdue_tracking",)

    def __init__(self, aggregator: DebtorAggregator | None = None):
        self.aggregator = aggregator or DebtorAggregator()

    def analyze(
        self, source: DataSource, period: Period
    ) -> tuple[dict[str, Any], int, dict[str, Any]]:
        as_of = period.end
        overdue = source.fetch("overdue_invoices", {"as_of_date": as_of})
        analysis = self.aggregator.analyze(overdue, as_of)
        return analysis.to_dict(), len(overdue), {"as_of_date": as_of.isoformat()}
