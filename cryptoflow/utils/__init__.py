"""
Utility modules.

Configuration loading and logging setup.
"""

from cryptoflow.utils.config_loader import AppConfig, load_config, load_env
from cryptoflow.utils.logging_config import LogContext, setup_logging

__all__ = [
    "AppConfig",
    "load_config",
    "load_env",
    "setup_logging",
    "LogContext",
]
