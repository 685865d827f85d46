"""
bbrun-proxy utilities module.
"""

from src.utils.config import Settings, get_settings, load_settings
from src.utils.logging import LogContext, configure_logging, get_logger

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "load_settings",
    # Logging
    "get_logger",
    "configure_logging",
    "LogContext",
]
