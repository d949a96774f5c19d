"""
Unsigned integer helpers mirroring EVM word semantics.

Checked operations reject results outside [0, 2**256 - 1] instead of
wrapping; the only wrapping arithmetic in the pool is the 32-bit timestamp
difference and the price accumulators.
"""
import math

from amm_core.errors import ArithmeticBoundsError

UINT32_MODULUS = 2 ** 32
UINT112_MAX = 2 ** 112 - 1
UINT224_MAX = 2 ** 224 - 1
UINT256_MODULUS = 2 ** 256
UINT256_MAX = UINT256_MODULUS - 1


def checked_add(x: int, y: int) -> int:
    z = x + y
    if z > UINT256_MAX:
        raise ArithmeticBoundsError("ds-math-add-overflow")
    return z


def checked_sub(x: int, y: int) -> int:
    z = x - y
    if z < 0:
        raise ArithmeticBoundsError("ds-math-sub-underflow")
    return z


def checked_mul(x: int, y: int) -> int:
    z = x * y
    if z > UINT256_MAX:
        raise ArithmeticBoundsError("ds-math-mul-overflow")
    return z


def wrapping_add(x: int, y: int) -> int:
    """Add modulo 2**256; price accumulators are allowed to overflow."""
    return (x + y) % UINT256_MODULUS


def isqrt(y: int) -> int:
    """Floor of the square root of a non-negative integer."""
    return math.isqrt(y)


def require_uint112(value: int, reason: str = "OVERFLOW") -> int:
    if value < 0 or value > UINT112_MAX:
        raise ArithmeticBoundsError(reason)
    return value


def require_uint256(value, reason: str = "INVALID_AMOUNT") -> int:
    """Reject anything that is not an int in [0, 2**256 - 1]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ArithmeticBoundsError(reason)
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticBoundsError(reason)
    return value
