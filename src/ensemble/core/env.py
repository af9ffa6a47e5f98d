# src/ensemble/core/env.py
"""Environment configuration utilities."""

from __future__ import annotations

from dotenv import load_dotenv

from ..config import EnsembleConfig, config


def load_env(*, reload_config: bool = False) -> EnsembleConfig:
    """Load environment variables from a local ``.env`` file.

    ``.env`` values never override variables already present in the process
    environment. With ``reload_config`` the returned configuration is rebuilt
    from the updated environment instead of the import-time instance.
    """
    load_dotenv(override=False)
    if reload_config:
        return EnsembleConfig.load()
    return config


def get_config() -> EnsembleConfig:
    """Get the global configuration instance."""
    return config


__all__ = ["load_env", "get_config"]
