"""Digest modules for Pohoda Digest."""

from pohoda_digest.modules.base import DigestModule, ModuleResult
from pohoda_digest.modules.debtors import (
    AgeBucket,
    DebtorAggregator,
    DebtorAnalysis,
    DebtorsModule,
)
from pohoda_digest.modules.invoices import (
    InvoiceAggregator,
    InvoiceAnalysis,
    OutcomingInvoicesModule,
)

# Registration order is the order modules appear in a digest.
AVAILABLE_MODULES: dict[str, type[DigestModule]] = {
    OutcomingInvoicesModule.name: OutcomingInvoicesModule,
    DebtorsModule.name: DebtorsModule,
}

__all__ = [
    "AVAILABLE_MODULES",
    "DigestModule",
    "ModuleResult",
    "InvoiceAggregator",
    "InvoiceAnalysis",
    "OutcomingInvoicesModule",
    "AgeBucket",
    "DebtorAggregator",
    "DebtorAnalysis",
    "DebtorsModule",
]
