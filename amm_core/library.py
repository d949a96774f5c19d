"""
Single-pair helpers for callers: token ordering, pair address derivation and
quotes that match the pair's integer arithmetic exactly.
"""
from amm_core.crypto import ZERO_ADDRESS, create2_address, generate_hash
from amm_core.errors import ValidationError
from amm_core.pair import FEE_BASE, SWAP_FEE

PAIR_INIT_CODE_HASH = generate_hash(b"amm_core.pair.Pair")


def sort_tokens(token_a: bytes, token_b: bytes) -> tuple[bytes, bytes]:
    if token_a == token_b:
        raise ValidationError("IDENTICAL_ADDRESSES")
    token0, token1 = (token_a, token_b) if token_a < token_b else (token_b, token_a)
    if token0 == ZERO_ADDRESS:
        raise ValidationError("ZERO_ADDRESS")
    return token0, token1


def pair_for(factory: bytes, token_a: bytes, token_b: bytes) -> bytes:
    """Address of the pair for two tokens, without any state lookup."""
    token0, token1 = sort_tokens(token_a, token_b)
    return create2_address(factory, generate_hash(token0 + token1), PAIR_INIT_CODE_HASH)


def get_reserves(host, factory: bytes, token_a: bytes, token_b: bytes) -> tuple[int, int]:
    """Reserves of the (token_a, token_b) pair, ordered as the arguments."""
    token0, _ = sort_tokens(token_a, token_b)
    reserve0, reserve1, _ = host.get_contract(pair_for(factory, token_a, token_b)).get_reserves()
    return (reserve0, reserve1) if token_a == token0 else (reserve1, reserve0)


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Equivalent amount of the other token at the current reserve ratio."""
    if amount_a <= 0:
        raise ValidationError("INSUFFICIENT_AMOUNT")
    if reserve_a <= 0 or reserve_b <= 0:
        raise ValidationError("INSUFFICIENT_LIQUIDITY")
    return amount_a * reserve_b // reserve_a


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """
    Maximum output for a given input, after the 0.3% fee.

    amount_out = amount_in * 997 * reserve_out / (reserve_in * 1000 + amount_in * 997)
    """
    if amount_in <= 0:
        raise ValidationError("INSUFFICIENT_INPUT_AMOUNT")
    if reserve_in <= 0 or reserve_out <= 0:
        raise ValidationError("INSUFFICIENT_LIQUIDITY")
    amount_in_with_fee = amount_in * (FEE_BASE - SWAP_FEE)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * FEE_BASE + amount_in_with_fee
    return numerator // denominator


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """Minimum input required for a given output, after the 0.3% fee."""
    if amount_out <= 0:
        raise ValidationError("INSUFFICIENT_OUTPUT_AMOUNT")
    if reserve_in <= 0 or reserve_out <= 0 or amount_out >= reserve_out:
        raise ValidationError("INSUFFICIENT_LIQUIDITY")
    numerator = reserve_in * amount_out * FEE_BASE
    denominator = (reserve_out - amount_out) * (FEE_BASE - SWAP_FEE)
    return numerator // denominator + 1
