"""Data source contract consumed by the digest modules."""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from pohoda_digest.models import InvoiceRecord


class DataSourceError(Exception):
    """A data source could not serve a request."""


class DataSource(Protocol):
    """Anything that can hand normalized accounting records to the modules."""

    @property
    def system_name(self) -> str: ...

    @property
    def supported_entities(self) -> Sequence[str]: ...

    def supports_feature(self, feature: str) -> bool: ...

    def fetch(
        self, entity_kind: str, conditions: Mapping[str, Any] | None = None
    ) -> list[InvoiceRecord]: ...

    def company_info(self) -> dict[str, Any]: ...

    def test_connection(self) -> bool: ...
