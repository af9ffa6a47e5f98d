"""Core utilities for Ensemble."""

from .env import get_config, load_env
from .logging import get_logger, init_logging
from .logs import EventType, Priority, get_event_logger

__all__ = [
    "get_config",
    "load_env",
    "get_logger",
    "init_logging",
    "EventType",
    "Priority",
    "get_event_logger",
]
