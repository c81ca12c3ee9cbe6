"""Normalized accounting records and the reporting period."""

from __future__ import annotations

import calendar
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any
from uuid import uuid4

DEFAULT_CURRENCY = "CZK"
DEFAULT_DOCUMENT_TYPE = "FAKTURA"
DEFAULT_CUSTOMER = "Unknown"

# Checked in order inside a homeCurrency / foreignCurrency block.
_AMOUNT_KEYS = ("priceSum", "priceNone", "price", "amount")


class InvoiceState(str, Enum):
    """Lifecycle state of an invoice as far as the digest cares."""

    ACTIVE = "active"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class InvoiceRecord:
    """A fully populated invoice, ready for aggregation."""

    id: str
    number: str
    issue_date: date | None
    due_date: date | None
    amount: Decimal
    currency: str
    document_type: str
    customer_name: str
    customer_id: str
    state: InvoiceState = InvoiceState.ACTIVE

    @property
    def is_cancelled(self) -> bool:
        return self.state is InvoiceState.CANCELLED


@dataclass(frozen=True)
class Period:
    """Inclusive date range a digest covers."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"Period start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @classmethod
    def current_month(cls, today: date | None = None) -> Period:
        """Return the period from the first to the last day of the month."""
        today = today or date.today()
        last_day = calendar.monthrange(today.year, today.month)[1]
        return cls(start=today.replace(day=1), end=today.replace(day=last_day))

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def parse_date(value: Any) -> date | None:
    """Parse an ISO date (or the date part of a datetime); None when unusable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def parse_decimal(value: Any) -> Decimal:
    """Parse a monetary value; anything unparseable counts as zero."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        parsed = Decimal(str(value).strip().replace(" ", "").replace(",", "."))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not parsed.is_finite():
        return Decimal("0")
    return parsed


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _currency_block(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    foreign = _mapping(raw.get("foreignCurrency"))
    if foreign and _currency_code(foreign):
        return foreign
    home = _mapping(raw.get("homeCurrency"))
    return home or foreign


def _currency_code(block: Mapping[str, Any]) -> str | None:
    currency = block.get("currency")
    if isinstance(currency, Mapping):
        currency = currency.get("ids")
    if isinstance(currency, str) and currency.strip():
        return currency.strip().upper()
    return None


def _block_amount(block: Mapping[str, Any]) -> Decimal:
    value = _first(block, *_AMOUNT_KEYS)
    return parse_decimal(value)


def _partner(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    identity = _mapping(raw.get("partnerIdentity"))
    address = _mapping(identity.get("address"))
    return address or _mapping(raw.get("address"))


def _state(value: Any) -> InvoiceState:
    if isinstance(value, InvoiceState):
        return value
    if isinstance(value, str) and value.strip().lower() in ("cancelled", "canceled", "storno"):
        return InvoiceState.CANCELLED
    return InvoiceState.ACTIVE


def normalize_invoice(raw: Mapping[str, Any]) -> InvoiceRecord:
    """Turn a raw invoice mapping into an InvoiceRecord.

    Understands both the mServer field names (``dateDue``, ``invoiceType``,
    ``partnerIdentity``, ``homeCurrency``...) and the flat normalized names
    (``due_date``, ``document_type``, ``partner_name``, ``amount``...).
    Missing or malformed fields fall back to defaults; this never raises.
    """
    block = _currency_block(raw)
    partner = _partner(raw)

    if block:
        amount = _block_amount(block)
        currency = _currency_code(block) or _currency_code(raw) or DEFAULT_CURRENCY
    else:
        amount = parse_decimal(raw.get("amount"))
        currency = _currency_code(raw) or DEFAULT_CURRENCY

    number = str(_first(raw, "number", "numberRequested") or "")
    record_id = str(_first(raw, "id") or number or uuid4().hex)

    return InvoiceRecord(
        id=record_id,
        number=number,
        issue_date=parse_date(_first(raw, "date", "issue_date", "dateAccounting")),
        due_date=parse_date(_first(raw, "due_date", "dateDue", "dueDate")),
        amount=amount,
        currency=currency,
        document_type=str(
            _first(raw, "document_type", "invoiceType", "documentType") or DEFAULT_DOCUMENT_TYPE
        ),
        customer_name=str(
            _first(raw, "partner_name", "customer_name", "customer")
            or partner.get("name")
            or DEFAULT_CUSTOMER
        ),
        customer_id=str(_first(raw, "partner_ico", "customer_id") or partner.get("ico") or ""),
        state=_state(raw.get("state")),
    )
