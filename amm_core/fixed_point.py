"""
UQ112x112 binary fixed point numbers.

A 224-bit word whose high 112 bits hold the integer part and whose low 112
bits hold the fraction; resolution is 1 / 2**112.
"""
from decimal import Decimal, localcontext

RESOLUTION = 112
Q112 = 2 ** RESOLUTION


def encode(y: int) -> int:
    """Encode a uint112 as a UQ112x112; never overflows."""
    return y * Q112


def uqdiv(x: int, y: int) -> int:
    """Divide a UQ112x112 by a uint112, truncating."""
    return x // y


def decode(x: int) -> int:
    """Integer part of a UQ112x112 (or of a wider accumulated value)."""
    return x >> RESOLUTION


def to_decimal(x: int) -> Decimal:
    """Exact decimal value of a UQ112x112, for display and metrics."""
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(x) / Decimal(Q112)
