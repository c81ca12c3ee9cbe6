"""Pytest configuration and fixtures."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

# Set test environment variables before importing settings
os.environ.setdefault("POHODA_USERNAME", "digest")
os.environ.setdefault("POHODA_PASSWORD", "testpassword")
os.environ.setdefault("POHODA_ICO", "12345678")

from pohoda_digest.config.settings import DigestSettings  # noqa: E402
from pohoda_digest.models import InvoiceRecord, InvoiceState, Period  # noqa: E402


def make_invoice(
    customer: str = "ABC s.r.o.",
    amount: str | int = "1000",
    currency: str = "CZK",
    document_type: str = "issuedInvoice",
    state: InvoiceState = InvoiceState.ACTIVE,
    due_date: date | None = None,
    number: str = "FV0001",
    issue_date: date | None = None,
) -> InvoiceRecord:
    """Build an InvoiceRecord with sensible defaults."""
    return InvoiceRecord(
        id=number,
        number=number,
        issue_date=issue_date or date(2024, 1, 10),
        due_date=due_date,
        amount=Decimal(str(amount)),
        currency=currency,
        document_type=document_type,
        customer_name=customer,
        customer_id="",
        state=state,
    )


@dataclass
class FakeSource:
    """In-memory DataSource for module and digestor tests."""

    invoices: list[InvoiceRecord] = field(default_factory=list)
    overdue_invoices: list[InvoiceRecord] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)
    features: set[str] = field(
        default_factory=lambda: {"invoice_analysis", "overdue_tracking"}
    )
    connected: bool = True
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    @property
    def system_name(self) -> str:
        return "fake"

    @property
    def supported_entities(self) -> tuple[str, ...]:
        return ("invoices", "overdue_invoices")

    def supports_feature(self, feature: str) -> bool:
        return feature in self.features

    def fetch(
        self, entity_kind: str, conditions: Mapping[str, Any] | None = None
    ) -> list[InvoiceRecord]:
        self.calls.append((entity_kind, dict(conditions or {})))
        if entity_kind in self.fail_on:
            raise RuntimeError(f"{entity_kind} backend unavailable")
        return list(getattr(self, entity_kind))

    def company_info(self) -> dict[str, Any]:
        return {"name": "Test Company", "ico": "12345678", "system": "Fake", "server_url": ""}

    def test_connection(self) -> bool:
        return self.connected


@pytest.fixture
def settings():
    """Explicit settings instance, independent of any .env file."""
    return DigestSettings(
        _env_file=None,
        POHODA_URL="http://mserver.test:10010",
        POHODA_USERNAME="digest",
        POHODA_PASSWORD="secret",
        POHODA_ICO="12345678",
        SMTP_HOST="smtp.test",
        SMTP_PORT=2525,
    )


@pytest.fixture
def january():
    return Period(start=date(2024, 1, 1), end=date(2024, 1, 31))


@pytest.fixture
def fake_source():
    return FakeSource()
