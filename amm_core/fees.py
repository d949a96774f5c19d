"""
Protocol fee: one sixth of the growth in sqrt(k) between liquidity events,
paid to the fee recipient as newly minted liquidity shares.
"""
from amm_core.uint import checked_add, checked_mul, checked_sub, isqrt

# liquidity = supply * (rootK - rootKLast) / (rootK * 5 + rootKLast)
PROTOCOL_FEE_DENOMINATOR_FACTOR = 5


def protocol_fee_liquidity(total_supply: int, reserve0: int, reserve1: int,
                           k_last: int) -> int:
    """Shares owed to the fee recipient; 0 when sqrt(k) has not grown."""
    root_k = isqrt(checked_mul(reserve0, reserve1))
    root_k_last = isqrt(k_last)
    if root_k <= root_k_last:
        return 0
    numerator = checked_mul(total_supply, checked_sub(root_k, root_k_last))
    denominator = checked_add(
        checked_mul(root_k, PROTOCOL_FEE_DENOMINATOR_FACTOR), root_k_last)
    return numerator // denominator
