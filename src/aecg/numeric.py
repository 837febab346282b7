"""Numeric reconstruction of compactly encoded sequence values.

Sequences in an aECG document rarely carry their values explicitly. Time axes
are *generated* from a head and an increment, and voltages are *scaled* from
raw device integers with an origin and a scale:

- generated: ``value[i] = head + i * increment``
- scaled:    ``value[i] = origin + digit[i] * scale``

All functions in this module are pure and hold no state, so they can be called
from any number of threads.
"""

import re
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal, InvalidOperation

import numpy as np
import pandas as pd

from .constants import TIME_UNIT_NANOSECONDS
from .errors import InvalidNumericError
from .types import Digits, Samples

_DECIMAL_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")

# HL7 TS layouts accepted, keyed by the length of the integral part
_TIMESTAMP_LAYOUTS = {
    4: "%Y",
    6: "%Y%m",
    8: "%Y%m%d",
    14: "%Y%m%d%H%M%S",
}


def parse_decimal(text: str | float | int, field: str = "value") -> float:
    """Parse a decimal string (or pass through a number) as a finite float.

    Args:
        text: Decimal string such as ``"0.002"``, ``"-5"`` or ``"2.5e3"``.
        field: Name of the field, used in the error message.

    Returns:
        The parsed value.

    Raises:
        InvalidNumericError: If ``text`` is not a finite decimal number.
    """
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        value = float(text)
    else:
        candidate = str(text).strip()
        if not _DECIMAL_PATTERN.fullmatch(candidate):
            raise InvalidNumericError(f"not a decimal number: {text!r}", field)
        value = float(candidate)
    if not np.isfinite(value):
        raise InvalidNumericError(f"not a finite number: {text!r}", field)
    return value


def parse_integer(text: str | int, field: str = "value") -> int:
    """Parse a signed integer string.

    Raises:
        InvalidNumericError: If ``text`` is not a signed base-10 integer.
    """
    if isinstance(text, int) and not isinstance(text, bool):
        return text
    candidate = str(text).strip()
    if not _INTEGER_PATTERN.fullmatch(candidate):
        raise InvalidNumericError(f"not an integer: {text!r}", field)
    return int(candidate)


def parse_digits(text: str) -> Digits:
    """Parse a whitespace-separated list of signed integers.

    Tokens may be separated by any run of whitespace. An empty or blank string
    yields an empty array. Parsing is atomic: if any token is not an integer,
    the whole call fails and no partial result is returned.

    Args:
        text: Digit list, e.g. ``"1 2  3\\n-4"``.

    Returns:
        Array of int64 digits in input order.

    Raises:
        InvalidNumericError: If any token is not a signed integer or does not
            fit in 64 bits.

    Examples:
        >>> parse_digits("1  2   3").tolist()
        [1, 2, 3]
        >>> parse_digits("").tolist()
        []
    """
    tokens = text.split()
    for position, token in enumerate(tokens):
        if not _INTEGER_PATTERN.fullmatch(token):
            raise InvalidNumericError(f"token {position} is not an integer: {token!r}", "digits")
    try:
        return np.array([int(token) for token in tokens], dtype=np.int64)
    except OverflowError as e:
        raise InvalidNumericError(f"digit out of 64-bit range: {e}", "digits") from e


def format_digits(digits: Sequence[int] | np.ndarray) -> str:
    """Render digits as a single-space separated string."""
    return " ".join(str(int(d)) for d in digits)


def count_digits(text: str) -> int:
    """Return the number of tokens in a digit list without parsing them."""
    return len(text.split())


def generate_series(head: str | float, increment: str | float, length: int) -> Samples:
    """Realize a generated list: ``head + i * increment`` for ``i`` in ``[0, length)``.

    Args:
        head: First value, as a decimal string or number.
        increment: Step between consecutive values.
        length: Number of values to produce.

    Returns:
        Array of ``length`` float64 values.

    Raises:
        InvalidNumericError: If ``head`` or ``increment`` is not a decimal number.
        ValueError: If ``length`` is negative.

    Examples:
        >>> generate_series("0", "0.002", 3).tolist()
        [0.0, 0.002, 0.004]
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    head_value = parse_decimal(head, "head")
    increment_value = parse_decimal(increment, "increment")
    return head_value + np.arange(length, dtype=np.float64) * increment_value


def scale_series(
    origin: str | float,
    scale: str | float,
    digits: str | Sequence[int] | np.ndarray,
) -> Samples:
    """Realize a scaled list: ``origin + digit * scale`` for every digit, in order.

    Args:
        origin: Baseline offset, as a decimal string or number.
        scale: Multiplier applied to every digit. Zero is accepted here; it is
            reported by the validator, not treated as a parse failure.
        digits: Raw integers, either as a digit-list string or a sequence.

    Returns:
        Array of float64 values, one per digit.

    Raises:
        InvalidNumericError: If ``origin``, ``scale`` or a digit cannot be parsed.

    Examples:
        >>> scale_series("100", "10", [0, 1, 2, -1, -2]).tolist()
        [100.0, 110.0, 120.0, 90.0, 80.0]
    """
    origin_value = parse_decimal(origin, "origin")
    scale_value = parse_decimal(scale, "scale")
    raw = parse_digits(digits) if isinstance(digits, str) else np.asarray(digits, dtype=np.int64)
    return origin_value + raw.astype(np.float64) * scale_value


def scale_integers(origin: int, scale: int, digits: str | Sequence[int] | np.ndarray) -> Digits:
    """Integer counterpart of ``scale_series`` for scaled integer lists."""
    raw = parse_digits(digits) if isinstance(digits, str) else np.asarray(digits, dtype=np.int64)
    return origin + raw * scale


def is_hl7_timestamp(text: str) -> bool:
    """Return True if ``text`` is an HL7 TS in one of the accepted layouts."""
    try:
        parse_hl7_timestamp(text)
    except InvalidNumericError:
        return False
    return True


def parse_hl7_timestamp(text: str) -> pd.Timestamp:
    """Parse an HL7 TS string into a timestamp.

    Accepted layouts: ``YYYY``, ``YYYYMM``, ``YYYYMMDD``, ``YYYYMMDDHHmmss``
    and ``YYYYMMDDHHmmss.S`` with one to six fractional digits.

    Raises:
        InvalidNumericError: If ``text`` matches none of the layouts.
    """
    integral, _, fraction = text.partition(".")
    layout = _TIMESTAMP_LAYOUTS.get(len(integral))
    if layout is None or not integral.isascii() or not integral.isdigit():
        raise InvalidNumericError(f"not an HL7 timestamp: {text!r}", "timestamp")
    if "." in text:
        if len(integral) != 14 or not (1 <= len(fraction) <= 6) or not fraction.isdigit():
            raise InvalidNumericError(f"not an HL7 timestamp: {text!r}", "timestamp")
        layout = f"{layout}.%f"
    try:
        return pd.Timestamp(datetime.strptime(text, layout))
    except ValueError as e:
        raise InvalidNumericError(f"not an HL7 timestamp: {text!r}", "timestamp") from e


def format_hl7_timestamp(timestamp: pd.Timestamp | datetime, fraction_digits: int = 3) -> str:
    """Format a timestamp as ``YYYYMMDDHHmmss`` plus an optional fraction.

    Examples:
        >>> format_hl7_timestamp(pd.Timestamp("2002-11-22 09:10:00.004"))
        '20021122091000.004'
    """
    timestamp = pd.Timestamp(timestamp)
    base = timestamp.strftime("%Y%m%d%H%M%S")
    if fraction_digits <= 0:
        return base
    nanos = timestamp.microsecond * 1_000 + timestamp.nanosecond
    return f"{base}.{nanos:09d}"[: len(base) + 1 + min(fraction_digits, 9)]


def increment_nanoseconds(increment: str | float, unit: str) -> int:
    """Convert a decimal increment in ``unit`` to an exact integer nanosecond count.

    Raises:
        InvalidNumericError: If the increment is not a decimal number or the unit
            is not a supported time unit.
    """
    if unit not in TIME_UNIT_NANOSECONDS:
        raise InvalidNumericError(
            f"unsupported time unit {unit!r}; expected one of {sorted(TIME_UNIT_NANOSECONDS)}",
            "increment.unit",
        )
    parse_decimal(increment, "increment")
    try:
        nanos = Decimal(str(increment).strip()) * TIME_UNIT_NANOSECONDS[unit]
    except InvalidOperation as e:
        raise InvalidNumericError(f"not a decimal number: {increment!r}", "increment") from e
    return int(nanos.to_integral_value())


def generate_timestamps(head: str, increment: str | float, unit: str, length: int) -> pd.DatetimeIndex:
    """Realize a generated timestamp list without floating point drift.

    The increment is converted to integer nanoseconds once, so the i-th
    timestamp is exactly ``head + i * increment``.

    Args:
        head: First timestamp as an HL7 TS string.
        increment: Step between samples as a decimal string.
        unit: Unit of the increment (``s``, ``ms``, ...).
        length: Number of timestamps to produce.

    Returns:
        DatetimeIndex with ``length`` entries.

    Examples:
        >>> idx = generate_timestamps("20021122091000.000", "0.002", "s", 3)
        >>> [format_hl7_timestamp(t) for t in idx]
        ['20021122091000.000', '20021122091000.002', '20021122091000.004']
    """
    if length < 0:
        raise ValueError(f"length must be non-negative, got {length}")
    start = parse_hl7_timestamp(head)
    step = increment_nanoseconds(increment, unit)
    offsets = pd.to_timedelta(np.arange(length, dtype=np.int64) * step, unit="ns")
    return pd.DatetimeIndex(start + offsets)
