"""Tests for the canonical JSON codec."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

import pytest
from pydantic import BaseModel

from shelfcache.shared.errors import DecodingError, EncodingError, ErrorCode
from shelfcache.shared.serialization import JsonCodec, has_unordered_collection


class Point(BaseModel):
    y: int
    x: int


class TestEncode:
    def test_dict_keys_are_sorted(self) -> None:
        codec: JsonCodec[dict[str, int]] = JsonCodec(dict[str, int])

        assert codec.encode({"b": 2, "a": 1}) == '{"a":1,"b":2}'
        assert codec.encode({"a": 1, "b": 2}) == codec.encode({"b": 2, "a": 1})

    def test_nested_keys_are_sorted(self) -> None:
        codec: JsonCodec[Any] = JsonCodec()

        assert codec.encode({"z": {"b": 1, "a": [{"d": 0, "c": 0}]}}) == '{"z":{"a":[{"c":0,"d":0}],"b":1}}'

    def test_model_fields_are_sorted(self) -> None:
        assert JsonCodec(Point).encode(Point(y=2, x=1)) == '{"x":1,"y":2}'

    def test_datetime(self) -> None:
        codec = JsonCodec(datetime)

        assert codec.encode(datetime(2024, 1, 1, tzinfo=timezone.utc)) == '"2024-01-01T00:00:00Z"'

    def test_unserializable_value(self) -> None:
        with pytest.raises(EncodingError) as exc_info:
            JsonCodec().encode(object())

        assert exc_info.value.code == ErrorCode.CACHE_SERIALIZATION_ERROR
        assert exc_info.value.original_error is not None


class TestDecode:
    def test_validates_into_type(self) -> None:
        assert JsonCodec(Point).decode('{"x":1,"y":2}') == Point(x=1, y=2)
        assert JsonCodec(tuple[str, int]).decode('["a",1]') == ("a", 1)

    def test_invalid_json(self) -> None:
        with pytest.raises(DecodingError) as exc_info:
            JsonCodec(int).decode("{not json")

        assert exc_info.value.code == ErrorCode.CACHE_DESERIALIZATION_ERROR

    def test_wrong_shape(self) -> None:
        with pytest.raises(DecodingError):
            JsonCodec(Point).decode('{"x":"one"}')


class TestLimits:
    def test_integers_beyond_64_bits_are_rejected(self) -> None:
        with pytest.raises(EncodingError, match="64-bit"):
            JsonCodec(int).encode(2**70)

    def test_64_bit_integers_are_kept(self) -> None:
        codec = JsonCodec(int)

        assert codec.decode(codec.encode(2**63 - 1)) == 2**63 - 1


class TestCanonicalKeys:
    def test_sets_are_rejected(self) -> None:
        codec: JsonCodec[Any] = JsonCodec(canonical=True)

        with pytest.raises(EncodingError, match="no stable order"):
            codec.encode({"tags": frozenset({"a", "b"})})

    def test_sets_allowed_for_values(self) -> None:
        assert JsonCodec(set[int]).encode({1}) == "[1]"

    @pytest.mark.parametrize(
        ("type_", "expected"),
        [
            (set[int], True),
            (list[frozenset[str]], True),
            (Optional[set[str]], True),
            (dict[str, list[int]], False),
            (tuple[str, ...], False),
            (Any, False),
        ],
    )
    def test_has_unordered_collection(self, type_: Any, expected: bool) -> None:
        assert has_unordered_collection(type_) is expected
