"""
Configuration management for infx.

This module provides a hierarchical configuration system using dataclasses
and YAML files, so that server location and batch transport settings can be
kept alongside analysis scripts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from omegaconf import OmegaConf

from infx.utils.logging import setup_logging

DEFAULT_HOST_URL = "https://infectx.biozentrum.unibas.ch"

# =========================
# Configuration Dataclasses
# =========================

@dataclass
class ServerConfig:
    """Configuration for the openBIS server."""

    host_url: str = DEFAULT_HOST_URL
    verify: bool = True  # TLS certificate verification

    # Additional endpoint name -> path suffix entries, merged over the built-in table
    endpoints: dict[str, str] = field(default_factory=dict)

@dataclass
class RequestConfig:
    """Configuration for JSON-RPC batch execution."""

    n_con: int = 5 # Max concurrently in-flight requests
    n_try: int = 2 # Max attempts per request
    mode: str = "parallel" # Options: parallel, serial
    timeout: float = 30.0 # Seconds, per exchange
    version: str = "2.0" # JSON-RPC version tag
    show_progress: bool = False

@dataclass
class LoggingConfig:
    """Configuration for log output."""

    level: str = "INFO"
    log_file: Optional[str] = None

    # Module name -> level overrides, e.g. {"infx.rpc.transport": "ERROR"}
    modules: dict[str, str] = field(default_factory=dict)

@dataclass
class InfxConfig:
    """Master config for infx.

    Example:
        >>> config = InfxConfig()
        >>> config.request.n_con = 10
        >>> config.save("configs/openbis.yaml")
        >>> config = InfxConfig.from_yaml("configs/openbis.yaml")
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    request: RequestConfig = field(default_factory=RequestConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def save(self, path: str | Path) -> None:
        """Save the configuration to a YAML file.

        Args:
            path: Output path.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        conf = OmegaConf.structured(self)

        with open(path, "w") as f:
            OmegaConf.save(conf, f)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "InfxConfig":
        """
        Load configuration from a YAML file, merged over the defaults.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            InfxConfig instance.
        """
        with open(Path(path)) as f:
            raw_config = yaml.safe_load(f) or {}

        return cls.from_dict(raw_config)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "InfxConfig":
        """
        Create configuration from dictionary.

        Args:
            config_dict: Configuration dictionary.

        Returns:
            InfxConfig instance.
        """
        default_conf = OmegaConf.structured(cls())
        loaded_conf = OmegaConf.create(config_dict)
        merged_conf = OmegaConf.merge(default_conf, loaded_conf)

        return OmegaConf.to_object(merged_conf)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return OmegaConf.to_container(OmegaConf.structured(self))

    def __repr__(self) -> str:
        return f"InfxConfig(host_url='{self.server.host_url}')"

# =================
# Active configuration
# =================

_active_config: Optional[InfxConfig] = None


def get_config() -> InfxConfig:
    """Return the process-wide configuration, creating defaults on first use."""
    global _active_config
    if _active_config is None:
        _active_config = InfxConfig()
    return _active_config


def set_config(config: InfxConfig) -> InfxConfig:
    """
    Install a configuration as the process-wide default.

    The logging section is applied immediately.

    Args:
        config: Configuration to activate.

    Returns:
        The previously active configuration.
    """
    global _active_config
    previous = get_config()
    _active_config = config
    setup_logging(
        level=config.logging.level,
        log_file=config.logging.log_file,
        modules=config.logging.modules,
    )
    return previous

# =================
# Utility Functions
# =================

def load_config(path: str | Path) -> InfxConfig:
    """
    Load configuration from YAML file.

    Convenience function that wraps InfxConfig.from_yaml().
    """
    return InfxConfig.from_yaml(path)

def create_default_config(output_path: Optional[str | Path] = None) -> InfxConfig:
    """
    Create a default configuration, optionally saving to a file.

    Args:
        output_path: If provided, save config to this path.

    Returns:
        Default InfxConfig instance.
    """
    config = InfxConfig()

    if output_path:
        config.save(output_path)

    return config
