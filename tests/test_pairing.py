# tests/test_pairing.py
import pytest

from ensemble.services.pairing import CharacterPair, canonical_pair, same_pair


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("b", "a", ("a", "b")),
        ("a", "b", ("a", "b")),
        ("B", "a", ("B", "a")),  # uppercase sorts before lowercase
        ("10", "9", ("10", "9")),  # string order, not numeric
        ("x", "x", ("x", "x")),
    ],
)
def test_canonical_pair_orders_by_string_comparison(a, b, expected):
    assert canonical_pair(a, b) == expected


def test_canonical_pair_is_symmetric():
    a = "9b2e4c1a-0000-4000-8000-000000000001"
    b = "1f7d3e2b-0000-4000-8000-000000000002"
    assert canonical_pair(a, b) == canonical_pair(b, a)
    assert canonical_pair(a, b).first == b


def test_self_pair_detection():
    assert not CharacterPair("a", "b").is_self_pair
    assert canonical_pair("z", "z").is_self_pair


def test_same_pair_ignores_order():
    assert same_pair(("a", "b"), ("b", "a"))
    assert same_pair(CharacterPair("a", "b"), ("a", "b"))
    assert not same_pair(("a", "b"), ("a", "c"))
