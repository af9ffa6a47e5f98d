# src/ensemble/services/__init__.py
"""Consistency rules for groups, characters, labels and relationships.

Each submodule exposes plain ``async`` functions that take the session as
their first argument; there is no shared service object.
"""
