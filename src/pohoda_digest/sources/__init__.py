"""Data sources feeding the digest modules."""

from pohoda_digest.sources.base import DataSource, DataSourceError
from pohoda_digest.sources.mserver import AuthenticationError, MServerClient, MServerError
from pohoda_digest.sources.provider import PohodaDataProvider

__all__ = [
    "DataSource",
    "DataSourceError",
    "MServerClient",
    "MServerError",
    "AuthenticationError",
    "PohodaDataProvider",
]
