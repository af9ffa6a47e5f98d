"""Configuration for Ensemble."""

from .config import (
    BootstrapConfig,
    DatabaseConfig,
    EnsembleConfig,
    SystemConfig,
    config,
)

__all__ = [
    "BootstrapConfig",
    "DatabaseConfig",
    "EnsembleConfig",
    "SystemConfig",
    "config",
]
