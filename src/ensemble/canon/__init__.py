# src/ensemble/canon/__init__.py
"""Database access helpers for the entity store."""

from .db import ensure_schema, get_pg

__all__ = ["get_pg", "ensure_schema"]
