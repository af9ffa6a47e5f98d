"""Ensemble: characters, groups, labels and the relationships between them."""

__version__ = "0.1.0"
