"""
Shared utilities: configuration and logging
"""

from .config import ConfigManager, DEFAULT_CONFIG, merge_dicts
from .logging import setup_logging

__all__ = [
    "ConfigManager",
    "DEFAULT_CONFIG",
    "merge_dicts",
    "setup_logging",
]
