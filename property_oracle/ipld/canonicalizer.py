"""
Canonical JSON serialization.

Produces RFC 8785 (JCS) style bytes:
- object keys sorted at every level (UTF-16 code unit order)
- no insignificant whitespace
- numbers in ECMAScript shortest round-trip form (1.0 -> 1, 1e-7 -> 1e-7),
  ints included (10**21 -> 1e+21)
- UTF-8 output, JSON string escaping

Two semantically equal values always serialize to identical bytes,
whatever the original key order was.
"""

import json
import math
from decimal import Decimal
from typing import Any

from property_oracle.core.errors import CanonicalizationError


MAX_SAFE_INTEGER = 2**53


def format_number(value: float, path: str = "$") -> str:
    """
    Render a float the way ECMAScript Number.prototype.toString does.

    Args:
        value: Finite float
        path: JSON path used in error messages

    Returns:
        Shortest round-trip decimal representation

    Raises:
        CanonicalizationError: If value is NaN or infinite

    Examples:
        >>> format_number(1.0)
        '1'
        >>> format_number(0.000001)
        '0.000001'
        >>> format_number(1e-7)
        '1e-7'
        >>> format_number(1e21)
        '1e+21'
    """
    if not math.isfinite(value):
        raise CanonicalizationError(f"Non-finite number at '{path}' has no canonical form", path=path)
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    # repr() gives the shortest round-trip digits; only the layout differs from ECMAScript
    _, digit_tuple, exponent = Decimal(repr(abs(value))).as_tuple()
    all_digits = "".join(str(d) for d in digit_tuple)
    digits = all_digits.rstrip("0")
    exponent += len(all_digits) - len(digits)
    k = len(digits)
    n = k + exponent

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = digits[:n] + "." + digits[n:]
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        exp_text = f"e+{e}" if e >= 0 else f"e-{-e}"
        mantissa = digits if k == 1 else digits[0] + "." + digits[1:]
        body = mantissa + exp_text
    return sign + body


def format_integer(value: int, path: str = "$") -> str:
    """
    Render an int as the same JSON number parsed to an IEEE double would be.

    Integers beyond 2**53 go through the float formatter so that 10**21 and
    1e21 serialize identically.

    Examples:
        >>> format_integer(42)
        '42'
        >>> format_integer(10**21)
        '1e+21'
    """
    if abs(value) <= MAX_SAFE_INTEGER:
        return str(value)
    try:
        as_float = float(value)
    except OverflowError as e:
        raise CanonicalizationError(f"Integer at '{path}' is too large for a JSON number", path=path) from e
    return format_number(as_float, path)


def _utf16_sort_key(key: str) -> bytes:
    return key.encode("utf-16-be", errors="surrogatepass")


class JsonCanonicalizer:
    """
    Deterministic JSON serializer.

    Supported types are None, bool, int, float, str, list/tuple and dict
    with string keys. Anything else raises CanonicalizationError.
    """

    def canonicalize(self, value: Any) -> bytes:
        """
        Serialize a JSON value to canonical bytes.

        Args:
            value: JSON-compatible value

        Returns:
            Canonical UTF-8 bytes

        Raises:
            CanonicalizationError: On unsupported types, non-finite numbers,
                non-string keys, cyclic references or invalid Unicode
        """
        parts: list[str] = []
        self._write(value, parts, "$", set())
        text = "".join(parts)
        try:
            return text.encode("utf-8")
        except UnicodeEncodeError as e:
            raise CanonicalizationError(f"Value contains invalid Unicode: {e.reason}") from e

    def canonicalize_text(self, value: Any) -> str:
        return self.canonicalize(value).decode("utf-8")

    def _write(self, value: Any, out: list[str], path: str, active: set[int]) -> None:
        if value is None:
            out.append("null")
        elif isinstance(value, bool):
            out.append("true" if value else "false")
        elif isinstance(value, int):
            out.append(format_integer(value, path))
        elif isinstance(value, float):
            out.append(format_number(value, path))
        elif isinstance(value, str):
            out.append(json.dumps(value, ensure_ascii=False))
        elif isinstance(value, (list, tuple)):
            self._enter(value, path, active)
            out.append("[")
            for i, item in enumerate(self._order_array(value)):
                if i:
                    out.append(",")
                self._write(item, out, f"{path}[{i}]", active)
            out.append("]")
            active.discard(id(value))
        elif isinstance(value, dict):
            self._enter(value, path, active)
            for key in value:
                if not isinstance(key, str):
                    raise CanonicalizationError(
                        f"Canonical JSON requires string keys, got {type(key).__name__} at '{path}'",
                        path=path,
                    )
            out.append("{")
            for i, key in enumerate(sorted(value, key=_utf16_sort_key)):
                if i:
                    out.append(",")
                out.append(json.dumps(key, ensure_ascii=False))
                out.append(":")
                self._write(value[key], out, f"{path}.{key}", active)
            out.append("}")
            active.discard(id(value))
        else:
            raise CanonicalizationError(
                f"Value of type {type(value).__name__} at '{path}' has no canonical JSON form",
                path=path,
            )

    @staticmethod
    def _enter(container: Any, path: str, active: set[int]) -> None:
        if id(container) in active:
            raise CanonicalizationError(f"Cyclic reference at '{path}'", path=path)
        active.add(id(container))

    def _order_array(self, items: list | tuple) -> list | tuple:
        return items


class IpldCanonicalizer(JsonCanonicalizer):
    """
    Canonicalizer for IPLD documents.

    Arrays containing links ({"/": "<cid>"}) are sorted by CID before
    serialization, so the order of a one-to-many relationship does not
    change the parent's identity. Non-link elements keep their relative
    order after the links.
    """

    def __init__(self, sort_link_arrays: bool = True):
        self.sort_link_arrays = sort_link_arrays

    def _order_array(self, items: list | tuple) -> list | tuple:
        if not self.sort_link_arrays or not any(_link_target(item) is not None for item in items):
            return items
        return sorted(items, key=_link_sort_key)


def _link_target(item: Any) -> str | None:
    if isinstance(item, dict) and len(item) == 1 and isinstance(item.get("/"), str):
        return item["/"]
    return None


def _link_sort_key(item: Any) -> tuple[int, str]:
    target = _link_target(item)
    return (0, target) if target is not None else (1, "")


_default = JsonCanonicalizer()


def canonicalize(value: Any) -> bytes:
    """Serialize a JSON value to canonical bytes with the default canonicalizer."""
    return _default.canonicalize(value)
