# src/ensemble/services/pairing.py
"""Canonical ordering of undirected character pairs.

A relationship between ``a`` and ``b`` is the same relationship as one
between ``b`` and ``a``. Every write stores the pair as
``(min(a, b), max(a, b))`` so that one lookup on (``character1_id``,
``character2_id``) finds it whichever way round the caller named it.

The ordering is Python's built-in ``str`` comparison (code point order).
It must never change: rows written under one ordering would stop matching
pairs canonicalized under another.
"""

from __future__ import annotations

from typing import NamedTuple


class CharacterPair(NamedTuple):
    """An ordered pair of character ids with ``first <= second``."""

    first: str
    second: str

    @property
    def is_self_pair(self) -> bool:
        return self.first == self.second


def canonical_pair(character_a: str, character_b: str) -> CharacterPair:
    """Return the storage ordering of the unordered pair ``{a, b}``."""
    if character_b < character_a:
        return CharacterPair(character_b, character_a)
    return CharacterPair(character_a, character_b)


def same_pair(
    pair: tuple[str, str] | CharacterPair, other: tuple[str, str] | CharacterPair
) -> bool:
    """Whether two pairs name the same two characters, in any order."""
    return canonical_pair(*pair) == canonical_pair(*other)


__all__ = ["CharacterPair", "canonical_pair", "same_pair"]
