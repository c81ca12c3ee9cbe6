"""Base digest module defining how an analysis is fetched, run and reported."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from pohoda_digest.models import Period
from pohoda_digest.sources.base import DataSource

logger = structlog.get_logger(__name__)


@dataclass
class ModuleResult:
    """Outcome of one module run over one period."""

    module_name: str
    heading: str
    description: str
    period: Period
    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    provider: str = ""
    processing_time: float = 0.0
    records_processed: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider,
            "processing_time": self.processing_time,
        }
        if self.records_processed is not None:
            metadata["records_processed"] = self.records_processed
        metadata.update(self.extra)

        result: dict[str, Any] = {
            "module_name": self.module_name,
            "heading": self.heading,
            "description": self.description,
            "period": self.period.to_dict(),
            "success": self.success,
            "data": self.data,
            "metadata": metadata,
        }
        if self.error is not None:
            result["error"] = self.error
        return result


class DigestModule(ABC):
    """Abstract base class for digest modules.

    A module fetches the records it needs from a DataSource, analyses them
    and wraps the outcome in a ModuleResult. Failures are reported in the
    result, never raised, so one broken module cannot sink the digest.

    Subclasses must implement:
    - analyze(): Fetch and analyse, returning (data, records_processed, extra)
    """

    name: str = ""
    heading: str = ""
    description: str = ""
    required_features: tuple[str, ...] = ()

    def process(self, source: DataSource, period: Period) -> ModuleResult:
        """Run the module for ``period`` against ``source``."""
        started = time.perf_counter()
        log = logger.bind(module=self.name)

        missing = [f for f in self.required_features if not source.supports_feature(f)]
        if missing:
            log.warning("module_unsupported", missing_features=missing)
            return self._result(
                period,
                source,
                started,
                success=False,
                error=f"Data source does not support: {', '.join(missing)}",
            )

        try:
            data, records_processed, extra = self.analyze(source, period)
        except Exception as e:
            log.exception("module_failed", error=str(e))
            return self._result(period, source, started, success=False, error=str(e))

        log.info("module_completed", records=records_processed)
        return self._result(
            period,
            source,
            started,
            success=True,
            data=data,
            records_processed=records_processed,
            extra=extra,
        )

    @abstractmethod
    def analyze(
        self, source: DataSource, period: Period
    ) -> tuple[dict[str, Any], int, dict[str, Any]]:
        """Fetch records and return (data tree, records processed, extra metadata)."""
        pass

    def _result(
        self,
        period: Period,
        source: DataSource,
        started: float,
        success: bool,
        data: dict[str, Any] | None = None,
        error: str | None = None,
        records_processed: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> ModuleResult:
        return ModuleResult(
            module_name=self.name,
            heading=self.heading,
            description=self.description,
            period=period,
            success=success,
            data=data or {},
            error=error,
            provider=source.system_name,
            processing_time=time.perf_counter() - started,
            records_processed=records_processed,
            extra=extra or {},
        )
