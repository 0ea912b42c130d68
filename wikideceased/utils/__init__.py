"""
wikideceased utilities module.
"""

from wikideceased.utils.config import Settings, get_project_root, get_settings
from wikideceased.utils.logging import LogContext, configure_logging, get_logger

__all__ = [
    "Settings",
    "get_settings",
    "get_project_root",
    "get_logger",
    "configure_logging",
    "LogContext",
]
