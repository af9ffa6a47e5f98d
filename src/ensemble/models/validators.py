# src/ensemble/models/validators.py
"""Custom validators for Pydantic models."""

from __future__ import annotations

import re

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def validate_non_empty(value: str) -> str:
    """Ensure ``value`` is not empty or whitespace."""
    if not value.strip():
        raise ValueError("must not be empty")
    return value


def validate_hex_color(value: str) -> str:
    """Ensure ``value`` is a ``#RRGGBB`` color."""
    if not HEX_COLOR_RE.match(value):
        raise ValueError("must be a valid hex color code (#RRGGBB)")
    return value


def clean_links(value: list[str] | None) -> list[str]:
    """Strip entries of ``value`` and drop blank ones, keeping order."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("must be a list")
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


__all__ = ["HEX_COLOR_RE", "validate_non_empty", "validate_hex_color", "clean_links"]
