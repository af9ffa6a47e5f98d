# src/ensemble/models/mixins.py
"""Common reusable mixin models."""

from __future__ import annotations

from datetime import datetime

from .base_model import EnsembleBaseModel


class IDMixin(EnsembleBaseModel):
    """Mixin that provides the store-assigned identifier."""

    id: str


class CreatedAtMixin(EnsembleBaseModel):
    """Mixin that adds the creation timestamp."""

    created_at: datetime


class TimestampsMixin(CreatedAtMixin):
    """Mixin that adds creation and update timestamps."""

    updated_at: datetime | None = None


__all__ = ["IDMixin", "CreatedAtMixin", "TimestampsMixin"]
