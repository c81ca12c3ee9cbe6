"""Pohoda Digest - analytical digests from Pohoda accounting data."""

__version__ = "0.1.0"

from pohoda_digest.config import configure_logging, get_settings, load_settings
from pohoda_digest.digestor import Digestor, DigestResult
from pohoda_digest.models import InvoiceRecord, InvoiceState, Period, normalize_invoice
from pohoda_digest.modules import (
    AVAILABLE_MODULES,
    DebtorAggregator,
    DebtorsModule,
    InvoiceAggregator,
    OutcomingInvoicesModule,
)
from pohoda_digest.renderer import DigestRenderer
from pohoda_digest.sources import DataSource, MServerClient, PohodaDataProvider

__all__ = [
    # Version
    "__version__",
    # Records
    "InvoiceRecord",
    "InvoiceState",
    "Period",
    "normalize_invoice",
    # Aggregation
    "InvoiceAggregator",
    "DebtorAggregator",
    "OutcomingInvoicesModule",
    "DebtorsModule",
    "AVAILABLE_MODULES",
    # Orchestration & output
    "Digestor",
    "DigestResult",
    "DigestRenderer",
    # Data sources
    "DataSource",
    "MServerClient",
    "PohodaDataProvider",
    # Config
    "get_settings",
    "load_settings",
    "configure_logging",
]
