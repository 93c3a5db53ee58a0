"""
Deterministic text encoding for cache keys and values.

Keys are compared as stored strings, so two semantically equal keys
must always produce the same text. Values go through the same path so
that a stored value can be validated back into the caller's type.

Conversion Strategy:
- pydantic TypeAdapter turns typed values into JSON-compatible data
  and validates decoded data back into the declared type
- orjson with OPT_SORT_KEYS renders the data with stable key order
- TypeAdapter instances are cached per type
"""

from __future__ import annotations

import functools
from typing import Any, Generic, TypeVar, get_args, get_origin

import orjson
from pydantic import TypeAdapter, ValidationError

from shelfcache.shared.errors import DecodingError, EncodingError, ErrorContext

T = TypeVar("T")

_DUMP_OPTIONS = orjson.OPT_SORT_KEYS

# JSON renders these in iteration order, which is not stable across runs
_UNORDERED_TYPES = (set, frozenset)


@functools.lru_cache(maxsize=128)
def _get_type_adapter(type_: Any) -> TypeAdapter[Any]:
    """Get or create a cached TypeAdapter for the given type.

    Args:
        type_: Any type pydantic can build a schema for (hashable)

    Returns:
        Cached TypeAdapter instance for the type
    """
    return TypeAdapter(type_)


def _type_name(type_: Any) -> str:
    return getattr(type_, "__name__", None) or repr(type_)


def has_unordered_collection(type_: Any) -> bool:
    """Whether a type hint contains set or frozenset at any depth."""
    origin = get_origin(type_) or type_
    if origin in _UNORDERED_TYPES:
        return True
    return any(has_unordered_collection(arg) for arg in get_args(type_))


def _contains_unordered(value: Any) -> bool:
    if isinstance(value, _UNORDERED_TYPES):
        return True
    if isinstance(value, dict):
        return any(_contains_unordered(k) or _contains_unordered(v) for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return any(_contains_unordered(item) for item in value)
    return False


class JsonCodec(Generic[T]):
    """Canonical JSON codec bound to one Python type.

    Decoding validates into the bound type, so a value only comes back
    unchanged when that type is declared. With ``Any`` the JSON form is
    returned: tuples as lists, datetimes as ISO strings, models as dicts.

    orjson encodes integers within the signed 64-bit range only (unsigned
    64-bit for positive values); larger ints raise EncodingError.

    With ``canonical=True`` (used for keys) values holding a set or
    frozenset are rejected, since their JSON text is not deterministic.

    Example:
        >>> codec = JsonCodec(dict[str, int])
        >>> codec.encode({"b": 2, "a": 1})
        '{"a":1,"b":2}'
        >>> codec.decode('{"a":1,"b":2}')
        {'a': 1, 'b': 2}
    """

    def __init__(self, type_: Any = Any, *, canonical: bool = False) -> None:
        self.type_ = type_
        self.canonical = canonical
        self._adapter = _get_type_adapter(type_)

    def encode(self, value: T) -> str:
        """Encode a value as canonical JSON text.

        Raises:
            EncodingError: If the value cannot be serialized
        """
        if self.canonical and _contains_unordered(value):
            raise EncodingError(
                f"Cannot encode {type(value).__name__} canonically: sets have no stable order",
                context=ErrorContext(
                    operation="encode",
                    additional_data={"type": _type_name(self.type_)},
                ),
            )
        try:
            data = self._adapter.dump_python(value, mode="json")
            return orjson.dumps(data, option=_DUMP_OPTIONS).decode("utf-8")
        except (orjson.JSONEncodeError, TypeError, ValueError) as e:
            raise EncodingError(
                f"Cannot encode {type(value).__name__} as {_type_name(self.type_)}: {e}",
                context=ErrorContext(
                    operation="encode",
                    additional_data={"type": _type_name(self.type_)},
                ),
                original_error=e,
            ) from e

    def decode(self, text: str) -> T:
        """Decode canonical JSON text into the bound type.

        Raises:
            DecodingError: If the text is not JSON or does not validate
        """
        try:
            data = orjson.loads(text)
            return self._adapter.validate_python(data)  # type: ignore[no-any-return]
        except (orjson.JSONDecodeError, ValidationError, TypeError, ValueError) as e:
            raise DecodingError(
                f"Cannot decode stored text as {_type_name(self.type_)}: {e}",
                context=ErrorContext(
                    operation="decode",
                    additional_data={"type": _type_name(self.type_)},
                ),
                original_error=e,
            ) from e
