"""Digestor - runs the digest modules over a period and delivers the result.

The digestor is the coordinator of a digest run. It:
- Runs each registered module once, in registration order, timing each one
- Turns a module that blows up into a failed module result instead of aborting
- Assembles the combined digest tree (period, provider, company, modules, benchmarks)
- Renders the tree as HTML or JSON, saves it to a file or emails it
"""

from __future__ import annotations

import json
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

import structlog

from pohoda_digest.config.settings import DigestSettings
from pohoda_digest.mailer import send_html_email
from pohoda_digest.models import Period
from pohoda_digest.modules import AVAILABLE_MODULES, DigestModule, ModuleResult
from pohoda_digest.renderer import DigestRenderer
from pohoda_digest.sources.base import DataSource
from pohoda_digest.sources.provider import PohodaDataProvider

logger = structlog.get_logger(__name__)

OutputFormat = Literal["html", "json"]


@dataclass
class DigestResult:
    """Combined output of one digest run."""

    period: Period
    provider: str
    company: dict[str, Any]
    modules: dict[str, ModuleResult] = field(default_factory=dict)
    benchmarks: dict[str, dict[str, float]] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def success(self) -> bool:
        return all(result.success for result in self.modules.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "digest": {
                "period": self.period.to_dict(),
                "provider": self.provider,
                "timestamp": self.timestamp.isoformat(),
                "company": self.company,
            },
            "modules": {name: result.to_dict() for name, result in self.modules.items()},
            "benchmarks": self.benchmarks,
        }


def to_json(data: dict[str, Any]) -> str:
    """Pretty-printed JSON with non-ASCII characters kept as-is."""
    return json.dumps(data, indent=4, ensure_ascii=False)


class Digestor:
    """Runs digest modules against a data source and renders the outcome."""

    def __init__(
        self,
        source: DataSource,
        modules: Iterable[DigestModule] | None = None,
        renderer: DigestRenderer | None = None,
        settings: DigestSettings | None = None,
    ):
        self.source = source
        self.renderer = renderer or DigestRenderer()
        self._settings = settings
        if modules is None:
            modules = [module_cls() for module_cls in AVAILABLE_MODULES.values()]
        self._modules: dict[str, DigestModule] = {module.name: module for module in modules}

    @classmethod
    def from_settings(
        cls,
        settings: DigestSettings,
        module_names: Sequence[str] | None = None,
    ) -> Digestor:
        """Build a digestor reading from Pohoda with the selected modules."""
        names = list(module_names) if module_names else list(AVAILABLE_MODULES)
        modules: list[DigestModule] = []
        for name in names:
            module_cls = AVAILABLE_MODULES.get(name)
            if module_cls is None:
                logger.warning("unknown_module_skipped", module=name)
                continue
            modules.append(module_cls())
        return cls(PohodaDataProvider(settings), modules=modules, settings=settings)

    @property
    def available_modules(self) -> list[str]:
        return list(self._modules)

    def test_connection(self) -> bool:
        return self.source.test_connection()

    def run(self, period: Period) -> DigestResult:
        """Run every registered module once over ``period``."""
        result = DigestResult(
            period=period,
            provider=self.source.system_name,
            company=self.source.company_info(),
        )
        logger.info(
            "digest_started",
            start=period.start.isoformat(),
            end=period.end.isoformat(),
            modules=self.available_modules,
        )

        for name, module in self._modules.items():
            start_time = time.time()
            try:
                module_result = module.process(self.source, period)
            except Exception as e:
                # process() reports its own failures; this catches a broken module.
                logger.exception("module_crashed", module=name, error=str(e))
                module_result = ModuleResult(
                    module_name=name,
                    heading=module.heading,
                    description=module.description,
                    period=period,
                    success=False,
                    error=str(e),
                    provider=self.source.system_name,
                )
            end_time = time.time()

            result.modules[name] = module_result
            result.benchmarks[name] = {
                "start": start_time,
                "end": end_time,
                "duration": end_time - start_time,
            }

        logger.info(
            "digest_generated",
            succeeded=[n for n, r in result.modules.items() if r.success],
            failed=[n for n, r in result.modules.items() if not r.success],
        )
        return result

    def get_json_data(self, period: Period) -> dict[str, Any]:
        return self.run(period).to_dict()

    def render(
        self,
        result: DigestResult,
        format: OutputFormat = "html",
        theme: str = "bootstrap",
    ) -> str:
        """Render an already computed digest."""
        if format == "json":
            return to_json(result.to_dict())
        if format == "html":
            self.renderer.set_theme(theme)
            return self.renderer.render(result.to_dict())
        raise ValueError(f"Unsupported format: {format}")

    def generate_html(self, period: Period, theme: str = "bootstrap") -> str:
        return self.render(self.run(period), "html", theme)

    def generate_json(self, period: Period) -> str:
        return self.render(self.run(period), "json")

    def save_to_file(
        self,
        result: DigestResult,
        file_path: str | Path,
        format: OutputFormat = "html",
        theme: str = "bootstrap",
    ) -> bool:
        """Write the rendered digest to ``file_path``; False on failure."""
        try:
            content = self.render(result, format, theme)
            Path(file_path).write_text(content, encoding="utf-8")
        except (OSError, ValueError) as e:
            logger.error("digest_save_failed", path=str(file_path), error=str(e))
            return False
        logger.info("digest_saved", path=str(file_path), format=format)
        return True

    def send_by_email(
        self,
        result: DigestResult,
        to_email: str,
        theme: str = "email",
        subject: str | None = None,
        sender: str | None = None,
    ) -> bool:
        """Email the digest rendered with ``theme``; False on failure."""
        if self._settings is None:
            logger.error("digest_email_failed", to=to_email, error="SMTP settings not configured")
            return False

        company_name = result.company.get("name", "")
        subject = subject or (
            f"Pohoda Digest Report - {result.period.start.strftime('%b %Y')} - {company_name}"
        )
        try:
            html = self.render(result, "html", theme)
            send_html_email(self._settings, to_email, subject, html, sender=sender)
        except Exception as e:
            logger.error("digest_email_failed", to=to_email, error=str(e))
            return False
        return True
