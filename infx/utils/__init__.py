"""
Utility functions and classes for infx.
"""

from infx.utils.config import (
    InfxConfig,
    LoggingConfig,
    RequestConfig,
    ServerConfig,
    create_default_config,
    get_config,
    load_config,
    set_config,
)
from infx.utils.logging import logger, setup_logging

__all__ = [
    # Config
    "InfxConfig",
    "ServerConfig",
    "RequestConfig",
    "LoggingConfig",
    "load_config",
    "create_default_config",
    "get_config",
    "set_config",
    # Logging
    "logger",
    "setup_logging",
]
