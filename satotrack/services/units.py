"""Base-unit / major-unit conversion.

Amounts travel through the pipeline as integer base units (satoshis) and are
only turned into ``Decimal`` major units when a snapshot is built.
"""

from decimal import Decimal, InvalidOperation
from typing import Any


def scale_exponent(unit_scale: int) -> int:
    """Number of decimal places implied by a power-of-ten unit scale."""
    digits = str(unit_scale)
    if unit_scale <= 0 or digits.rstrip("0") != "1":
        raise ValueError(f"unit_scale must be a positive power of ten, got {unit_scale}")
    return len(digits) - 1


def to_major(base_units: int, unit_scale: int) -> Decimal:
    """Convert integer base units to an exact major-unit Decimal.

    >>> to_major(100000000, 100000000)
    Decimal('1.00000000')
    """
    exponent = scale_exponent(unit_scale)
    return Decimal(int(base_units)).scaleb(-exponent)


def to_base(amount: Decimal, unit_scale: int) -> int:
    """Convert a major-unit Decimal back to integer base units.

    Raises ``ValueError`` if the amount carries more precision than the
    ledger can represent.
    """
    exponent = scale_exponent(unit_scale)
    scaled = Decimal(amount).scaleb(exponent)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{amount} is not representable with {exponent} decimal places")
    return int(scaled)


def coerce_base_units(value: Any) -> int:
    """Read a provider-reported base-unit amount as an int.

    Providers report integers, but JSON decoders occasionally hand back
    floats such as ``1e8``; fractional values are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Expected an integer amount, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"Fractional base-unit amount {value!r}")
        return int(value)
    if isinstance(value, str):
        try:
            parsed = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"Unparseable amount {value!r}") from exc
        if not parsed.is_finite() or parsed != parsed.to_integral_value():
            raise ValueError(f"Fractional base-unit amount {value!r}")
        return int(parsed)
    raise ValueError(f"Expected an integer amount, got {value!r}")
