"""Issued invoice analysis: currency totals, document types, top customers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from pohoda_digest.formatting import CurrencyTotals, add_amount, format_currency, format_totals
from pohoda_digest.models import InvoiceRecord, Period
from pohoda_digest.modules.base import DigestModule
from pohoda_digest.sources.base import DataSource

TOP_CUSTOMERS = 10


@dataclass
class DocumentTypeBucket:
    """Active invoices of one document type."""

    count: int = 0
    totals: CurrencyTotals = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "totals": format_totals(self.totals)}


@dataclass
class CustomerRollup:
    """Running totals for one customer, used for ranking."""

    name: str
    currency: str
    count: int = 0
    total: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "total": format_currency(self.total, self.currency),
        }


@dataclass
class InvoiceAnalysis:
    """Result of one InvoiceAggregator pass."""

    total_count: int = 0
    active_count: int = 0
    cancelled_count: int = 0
    currencies: list[str] = field(default_factory=list)
    document_types: list[str] = field(default_factory=list)
    currency_totals: CurrencyTotals = field(default_factory=dict)
    by_document_type: dict[str, DocumentTypeBucket] = field(default_factory=dict)
    top_customers: list[CustomerRollup] = field(default_factory=list)

    @property
    def document_types_count(self) -> int:
        return len(self.document_types)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "total_count": self.total_count,
                "active_count": self.active_count,
                "cancelled_count": self.cancelled_count,
                "document_types_count": self.document_types_count,
                "currencies": list(self.currencies),
            },
            "totals_by_currency": format_totals(self.currency_totals),
            "by_document_type": {
                doc_type: bucket.to_dict() for doc_type, bucket in self.by_document_type.items()
            },
            "by_status": {
                "active": self.active_count,
                "cancelled": self.cancelled_count,
            },
            "top_customers": [customer.to_dict() for customer in self.top_customers],
        }


class InvoiceAggregator:
    """Groups invoices by currency, document type and customer in one pass."""

    def __init__(self, top_n: int = TOP_CUSTOMERS):
        self.top_n = top_n

    def analyze(self, records: Iterable[InvoiceRecord]) -> InvoiceAnalysis:
        result = InvoiceAnalysis()
        customers: dict[str, CustomerRollup] = {}

        for record in records:
            result.total_count += 1

            if record.currency not in result.currencies:
                result.currencies.append(record.currency)
            if record.document_type not in result.document_types:
                result.document_types.append(record.document_type)

            if record.is_cancelled:
                result.cancelled_count += 1
                continue
            result.active_count += 1

            add_amount(result.currency_totals, record.currency, record.amount)

            bucket = result.by_document_type.setdefault(record.document_type, DocumentTypeBucket())
            bucket.count += 1
            add_amount(bucket.totals, record.currency, record.amount)

            customer = customers.get(record.customer_name)
            if customer is None:
                customer = customers[record.customer_name] = CustomerRollup(
                    name=record.customer_name, currency=record.currency
                )
            customer.count += 1
            customer.total += record.amount
            # Mixed-currency customers report the currency of their latest invoice.
            customer.currency = record.currency

        # sorted() is stable, so equal totals keep first-seen order.
        ranked = sorted(customers.values(), key=lambda c: c.total, reverse=True)
        result.top_customers = ranked[: self.top_n]
        return result


class OutcomingInvoicesModule(DigestModule):
    """Analysis of invoices issued within the period."""

    name = "outcoming_invoices"
    heading = "Outcoming Invoices"
    description = (
        "Analysis of issued invoices including totals, document types, and currency breakdown"
    )
    required_features = ("invoice_analysis",)

    def __init__(self, aggregator: InvoiceAggregator | None = None):
        self.aggregator = aggregator or InvoiceAggregator()

    def analyze(
        self, source: DataSource, period: Period
    ) -> tuple[dict[str, Any], int, dict[str, Any]]:
        invoices = source.fetch("invoices", {"date_from": period.start, "date_to": period.end})
        analysis = self.aggregator.analyze(invoices)
        return analysis.to_dict(), len(invoices), {}
