from __future__ import annotations

import pytest

from pyvledger.canonical import canonical_json, parse_json, sort_keys_recursive
from pyvledger.exceptions import SerializationError


def test_canonical_json_sorts_keys_recursively() -> None:
    value = {"b": 1, "a": {"z": [{"y": 1, "x": 2}], "c": None}}
    assert canonical_json(value) == b'{"a":{"c":null,"z":[{"x":2,"y":1}]},"b":1}'


def test_canonical_json_is_independent_of_insertion_order() -> None:
    first = {"Org": "Org1", "ID": "v1", "Battery": 100}
    second = {"Battery": 100, "ID": "v1", "Org": "Org1"}
    assert canonical_json(first) == canonical_json(second)


def test_integral_floats_are_written_as_integers() -> None:
    assert canonical_json({"lat": 0.0, "lon": 128.5}) == b'{"lat":0,"lon":128.5}'


def test_non_ascii_is_kept_as_utf8() -> None:
    assert canonical_json({"user": "김철수"}) == '{"user":"김철수"}'.encode()


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_numbers_are_rejected(bad: float) -> None:
    with pytest.raises(SerializationError):
        canonical_json({"value": bad})


def test_unserializable_values_raise_serialization_error() -> None:
    with pytest.raises(SerializationError):
        canonical_json({"value": object()})


def test_sort_keys_recursive_leaves_strings_alone() -> None:
    assert sort_keys_recursive(["ba", {"b": "x", "a": "y"}]) == ["ba", {"a": "y", "b": "x"}]


def test_parse_json_accepts_bytes_and_str() -> None:
    assert parse_json(b'{"a":1}') == {"a": 1}
    assert parse_json('[1,2]') == [1, 2]


@pytest.mark.parametrize("bad", [b"not json", b"\xff\xfe", b"", b"NaN", b'{"x": Infinity}', b"[-Infinity]"])
def test_parse_json_rejects_invalid_input(bad: bytes) -> None:
    with pytest.raises(SerializationError):
        parse_json(bad)
