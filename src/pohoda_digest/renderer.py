"""HTML rendering of digest trees with Jinja2 themes."""

from collections.abc import Mapping
from typing import Any

import structlog
from jinja2 import Environment, PackageLoader, select_autoescape

logger = structlog.get_logger(__name__)

THEMES = ("bootstrap", "email")

DEFAULT_TITLE = "Pohoda Digest"


def humanize(key: Any) -> str:
    """``top_customers`` -> ``Top customers``; age bucket keys pass through."""
    text = str(key).replace("_", " ").strip()
    return text[:1].upper() + text[1:]


class DigestRenderer:
    """Turns a ``DigestResult.to_dict()`` tree into an HTML document."""

    def __init__(self, theme: str = "bootstrap"):
        self._env = Environment(
            loader=PackageLoader("pohoda_digest", "templates"),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["humanize"] = humanize
        self.theme = "bootstrap"
        self.set_theme(theme)

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"Unknown theme: {theme!r} (expected one of {', '.join(THEMES)})")
        self.theme = theme

    def render(self, data: Mapping[str, Any], title: str | None = None) -> str:
        digest = data.get("digest", {})
        template = self._env.get_template(f"{self.theme}.html")
        html = template.render(
            title=title or DEFAULT_TITLE,
            digest=digest,
            period=digest.get("period", {}),
            company=digest.get("company", {}),
            modules=data.get("modules", {}),
            benchmarks=data.get("benchmarks", {}),
        )
        logger.debug("digest_rendered", theme=self.theme, size=len(html))
        return html
