"""Pohoda data provider: the DataSource the digest modules read from."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

import structlog

from pohoda_digest.config.settings import DigestSettings
from pohoda_digest.models import InvoiceRecord, Period, normalize_invoice, parse_date, parse_decimal
from pohoda_digest.sources.base import DataSourceError
from pohoda_digest.sources.mserver import MServerClient, MServerError

logger = structlog.get_logger(__name__)

SUPPORTED_ENTITIES = ("invoices", "overdue_invoices")

SUPPORTED_FEATURES = frozenset(
    {
        "invoice_analysis",
        "overdue_tracking",
        "multi_currency",
        "date_filtering",
    }
)


def _is_unpaid(raw: Mapping[str, Any]) -> bool:
    # Without a liquidation figure the invoice is treated as unpaid.
    value = raw.get("liquidation")
    if value in (None, ""):
        return True
    return parse_decimal(value) > 0


class PohodaDataProvider:
    """Reads invoices from a Pohoda mServer and hands out normalized records."""

    def __init__(self, settings: DigestSettings, client: MServerClient | None = None):
        self._settings = settings
        self._client = client or MServerClient(
            base_url=settings.pohoda_url,
            username=settings.pohoda_username,
            password=settings.pohoda_password.get_secret_value(),
            ico=settings.pohoda_ico,
            application=settings.pohoda_application,
            timeout=settings.pohoda_timeout,
        )

    @property
    def system_name(self) -> str:
        return "pohoda"

    @property
    def supported_entities(self) -> tuple[str, ...]:
        return SUPPORTED_ENTITIES

    def supports_feature(self, feature: str) -> bool:
        return feature in SUPPORTED_FEATURES

    def close(self) -> None:
        self._client.close()

    def fetch(
        self, entity_kind: str, conditions: Mapping[str, Any] | None = None
    ) -> list[InvoiceRecord]:
        """Fetch normalized records of the given kind.

        Conditions:
            invoices: ``date_from`` / ``date_to`` (default: current month).
            overdue_invoices: ``as_of_date`` (default: today).

        Raises:
            DataSourceError: unknown entity kind or mServer failure.
        """
        conditions = conditions or {}
        try:
            if entity_kind == "invoices":
                month = Period.current_month()
                return self.get_invoices(
                    parse_date(conditions.get("date_from")) or month.start,
                    parse_date(conditions.get("date_to")) or month.end,
                )
            if entity_kind == "overdue_invoices":
                return self.get_overdue_invoices(
                    parse_date(conditions.get("as_of_date")) or date.today()
                )
        except MServerError as e:
            logger.error("pohoda_fetch_failed", entity=entity_kind, error=str(e))
            raise DataSourceError(f"Pohoda {entity_kind} fetch failed: {e}") from e

        raise DataSourceError(f"Unsupported entity: {entity_kind}")

    def get_invoices(self, date_from: date, date_to: date) -> list[InvoiceRecord]:
        """Issued invoices dated within the range."""
        raw_invoices = self._client.list_invoices(date_from=date_from, date_till=date_to)
        return [normalize_invoice(raw) for raw in raw_invoices]

    def get_overdue_invoices(self, as_of_date: date) -> list[InvoiceRecord]:
        """Unpaid, non-cancelled issued invoices due before ``as_of_date``."""
        raw_invoices = self._client.list_invoices(date_till=as_of_date)

        overdue: list[InvoiceRecord] = []
        for raw in raw_invoices:
            if not _is_unpaid(raw):
                continue
            record = normalize_invoice(raw)
            if record.is_cancelled or record.due_date is None:
                continue
            if record.due_date < as_of_date:
                overdue.append(record)

        logger.debug(
            "overdue_invoices_filtered",
            as_of_date=as_of_date.isoformat(),
            listed=len(raw_invoices),
            overdue=len(overdue),
        )
        return overdue

    def company_info(self) -> dict[str, Any]:
        # mServer does not expose the company name through this interface.
        ico = self._settings.pohoda_ico
        return {
            "name": f"{ico} Company" if ico else "Pohoda Company",
            "ico": ico,
            "system": "Pohoda",
            "server_url": self._settings.pohoda_url,
        }

    def test_connection(self) -> bool:
        """Return True when the mServer answers its status endpoint."""
        try:
            status = self._client.status()
        except MServerError as e:
            logger.error("pohoda_connection_failed", url=self._settings.pohoda_url, error=str(e))
            return False
        logger.info("pohoda_connection_ok", url=self._settings.pohoda_url, status=status.get("status"))
        return True
