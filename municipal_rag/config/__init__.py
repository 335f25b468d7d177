"""Configuration and logging."""

from municipal_rag.config.logging import get_logger, setup_logging
from municipal_rag.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "get_logger", "setup_logging"]
