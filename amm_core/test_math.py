"""
Tests for checked uint arithmetic, UQ112x112 fixed point and the protocol fee formula.
"""
import unittest
from decimal import Decimal

from amm_core.errors import ArithmeticBoundsError
from amm_core.fees import protocol_fee_liquidity
from amm_core.fixed_point import Q112, decode, encode, to_decimal, uqdiv
from amm_core.uint import (
    UINT112_MAX,
    UINT224_MAX,
    UINT256_MAX,
    checked_add,
    checked_mul,
    checked_sub,
    isqrt,
    require_uint112,
    require_uint256,
    wrapping_add,
)


class TestCheckedArithmetic(unittest.TestCase):
    def test_add(self):
        self.assertEqual(checked_add(UINT256_MAX - 1, 1), UINT256_MAX)
        with self.assertRaisesRegex(ArithmeticBoundsError, "ds-math-add-overflow"):
            checked_add(UINT256_MAX, 1)

    def test_sub(self):
        self.assertEqual(checked_sub(5, 5), 0)
        with self.assertRaisesRegex(ArithmeticBoundsError, "ds-math-sub-underflow"):
            checked_sub(4, 5)

    def test_mul(self):
        self.assertEqual(checked_mul(2 ** 128, 2 ** 127), 2 ** 255)
        with self.assertRaisesRegex(ArithmeticBoundsError, "ds-math-mul-overflow"):
            checked_mul(2 ** 128, 2 ** 128)

    def test_wrapping_add(self):
        self.assertEqual(wrapping_add(UINT256_MAX, 1), 0)
        self.assertEqual(wrapping_add(UINT256_MAX, 10), 9)

    def test_isqrt_floors(self):
        self.assertEqual(isqrt(0), 0)
        self.assertEqual(isqrt(3), 1)
        self.assertEqual(isqrt(4), 2)
        self.assertEqual(isqrt(4 * 10 ** 36), 2 * 10 ** 18)
        self.assertEqual(isqrt(UINT112_MAX * UINT112_MAX), UINT112_MAX)

    def test_require_uint112(self):
        self.assertEqual(require_uint112(UINT112_MAX), UINT112_MAX)
        with self.assertRaisesRegex(ArithmeticBoundsError, "OVERFLOW"):
            require_uint112(UINT112_MAX + 1)
        with self.assertRaises(ArithmeticBoundsError):
            require_uint112(-1)

    def test_require_uint256(self):
        self.assertEqual(require_uint256(0), 0)
        self.assertEqual(require_uint256(UINT256_MAX), UINT256_MAX)
        for value in (-1, UINT256_MAX + 1, 1.0, "1", True):
            with self.assertRaisesRegex(ArithmeticBoundsError, "INVALID_AMOUNT"):
                require_uint256(value)


class TestFixedPoint(unittest.TestCase):
    def test_encode_decode(self):
        self.assertEqual(encode(1), Q112)
        self.assertEqual(decode(encode(12345)), 12345)
        self.assertLessEqual(encode(UINT112_MAX), UINT224_MAX)

    def test_uqdiv_truncates(self):
        self.assertEqual(uqdiv(encode(1), 3), Q112 // 3)
        self.assertEqual(uqdiv(encode(6), 2), 3 * Q112)
        self.assertEqual(decode(uqdiv(encode(1), 3)), 0)

    def test_to_decimal(self):
        self.assertEqual(to_decimal(encode(3)), Decimal(3))
        self.assertEqual(to_decimal(Q112 // 2), Decimal("0.5"))


class TestProtocolFee(unittest.TestCase):
    def test_no_growth_no_fee(self):
        self.assertEqual(protocol_fee_liquidity(1000, 100, 100, 100 * 100), 0)
        # a shrinking k also mints nothing
        self.assertEqual(protocol_fee_liquidity(1000, 90, 100, 100 * 100), 0)

    def test_one_sixth_of_growth(self):
        # rootK doubles: supply * (2r - r) / (5 * 2r + r) = supply / 11
        self.assertEqual(protocol_fee_liquidity(1100, 200, 200, 100 * 100), 100)

    def test_matches_reference_vector(self):
        ether = 10 ** 18
        reserve0 = 1000 * ether - 996006981039903216
        reserve1 = 1001 * ether
        self.assertEqual(
            protocol_fee_liquidity(1000 * ether, reserve0, reserve1, (1000 * ether) ** 2),
            249750499251388,
        )


if __name__ == '__main__':
    unittest.main()
