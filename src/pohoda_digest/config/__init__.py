"""Configuration module for Pohoda Digest."""

from pohoda_digest.config.logging import configure_logging, get_logger
from pohoda_digest.config.settings import DigestSettings, get_settings, load_settings

__all__ = ["DigestSettings", "get_settings", "load_settings", "configure_logging", "get_logger"]
