"""Application infrastructure: settings, logging, error handling, maintenance tasks."""

from imposter_cards.core.logging import configure_logging
from imposter_cards.core.settings import AppSettings

__all__ = ["AppSettings", "configure_logging"]
