"""
Constant-product pair: the reserve ledger for one pair of tokens.

The pair tracks its recorded reserves separately from the true token
balances it holds. Liquidity is added by transferring both tokens in and
calling `mint`, removed by transferring shares in and calling `burn`, and
traded with `swap`, which pays out first and verifies the fee-adjusted
constant product afterwards (allowing flash swaps through a callback).

Every mutating operation holds the pair's reentrancy guard and runs inside a
state savepoint, so a failure leaves no trace in reserves, balances,
accumulators or events.
"""
import logging
from contextlib import contextmanager

from amm_core import fees
from amm_core.contract import SwapCallee
from amm_core.crypto import ZERO_ADDRESS
from amm_core.errors import InvariantViolation, TransferFailed, ValidationError
from amm_core.events import Burn, Mint, Swap, Sync
from amm_core.guard import ReentrancyGuard
from amm_core.ledger import Token
from amm_core.oracle import accumulate, block_timestamp_32, elapsed_since
from amm_core.uint import checked_mul, checked_sub, isqrt, require_uint112, require_uint256

logger = logging.getLogger(__name__)

MINIMUM_LIQUIDITY = 1000

# 0.3% of every unit of input stays in the pool
FEE_BASE = 1000
SWAP_FEE = 3

SHARE_NAME = "AMM V2 Liquidity"
SHARE_SYMBOL = "AMM-V2"


class Pair(Token):
    def __init__(self, host, address: bytes, factory: bytes):
        super().__init__(host, address, name=SHARE_NAME, symbol=SHARE_SYMBOL)
        self.factory = factory
        self.guard = ReentrancyGuard()

    @contextmanager
    def _lock(self):
        with self.guard, self.state.transaction():
            yield

    # ------------------------------------------------------------------
    # State accessors

    @property
    def token0(self) -> bytes:
        return self._load('token0', default=ZERO_ADDRESS)

    @property
    def token1(self) -> bytes:
        return self._load('token1', default=ZERO_ADDRESS)

    @property
    def price0_cumulative_last(self) -> int:
        return self._load('price0_cumulative_last')

    @property
    def price1_cumulative_last(self) -> int:
        return self._load('price1_cumulative_last')

    @property
    def k_last(self) -> int:
        return self._load('k_last')

    def get_reserves(self) -> tuple[int, int, int]:
        """(reserve0, reserve1, block_timestamp_last)"""
        return (
            self._load('reserve0'),
            self._load('reserve1'),
            self._load('block_timestamp_last'),
        )

    def _balance(self, token: bytes) -> int:
        return self.host.get_contract(token).balance_of(self.address)

    def _safe_transfer(self, token: bytes, to: bytes, value: int):
        result = self.host.get_contract(token).transfer(self.address, to, value)
        if result is not True:
            raise TransferFailed()

    # ------------------------------------------------------------------
    # Internal steps

    def _update(self, balance0: int, balance1: int, reserve0: int, reserve1: int):
        """Accumulate prices for the elapsed period, then record new reserves."""
        require_uint112(balance0)
        require_uint112(balance1)
        now = block_timestamp_32(self.host.block_timestamp)
        _, _, last = self.get_reserves()
        price0, price1 = accumulate(
            self.price0_cumulative_last, self.price1_cumulative_last,
            reserve0, reserve1, elapsed_since(last, now))

        self._store('price0_cumulative_last', value=price0)
        self._store('price1_cumulative_last', value=price1)
        self._store('reserve0', value=balance0)
        self._store('reserve1', value=balance1)
        self._store('block_timestamp_last', value=now)
        self._emit(Sync, reserve0=balance0, reserve1=balance1)
        logger.debug(f"Pair {self.address.hex()[:8]} synced reserves ({balance0}, {balance1})")

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the protocol fee if it is on; returns whether it is on."""
        fee_to = self.host.get_contract(self.factory).fee_to
        fee_on = fee_to != ZERO_ADDRESS
        k_last = self.k_last
        if fee_on:
            if k_last != 0:
                liquidity = fees.protocol_fee_liquidity(
                    self.total_supply, reserve0, reserve1, k_last)
                if liquidity > 0:
                    self._mint(fee_to, liquidity)
                    logger.debug(f"Protocol fee: minted {liquidity} shares to {fee_to.hex()[:8]}")
        elif k_last != 0:
            self._store('k_last', value=0)
        return fee_on

    def _record_k_last(self):
        reserve0, reserve1, _ = self.get_reserves()
        self._store('k_last', value=reserve0 * reserve1)

    # ------------------------------------------------------------------
    # Public operations

    def initialize(self, sender: bytes, token0: bytes, token1: bytes):
        """Bind the pair's tokens; called once by the factory."""
        with self._lock():
            if sender != self.factory:
                raise ValidationError("FORBIDDEN")
            if self.token0 != ZERO_ADDRESS or self.token1 != ZERO_ADDRESS:
                raise ValidationError("ALREADY_INITIALIZED")
            self._store('token0', value=token0)
            self._store('token1', value=token1)

    def mint(self, sender: bytes, to: bytes) -> int:
        """
        Issue shares for the tokens transferred in since the last update.

        The first provision mints sqrt(amount0 * amount1) shares, of which
        MINIMUM_LIQUIDITY go to the zero address forever. Later provisions
        receive the smaller of the two proportional shares.

        Returns:
            Shares minted to `to`
        """
        with self._lock():
            reserve0, reserve1, _ = self.get_reserves()
            balance0 = self._balance(self.token0)
            balance1 = self._balance(self.token1)
            amount0 = checked_sub(balance0, reserve0)
            amount1 = checked_sub(balance1, reserve1)

            fee_on = self._mint_fee(reserve0, reserve1)
            # read after _mint_fee, which may mint
            total_supply = self.total_supply
            if total_supply == 0:
                liquidity = checked_sub(isqrt(checked_mul(amount0, amount1)), MINIMUM_LIQUIDITY)
                self._mint(ZERO_ADDRESS, MINIMUM_LIQUIDITY)
            else:
                liquidity = min(
                    checked_mul(amount0, total_supply) // reserve0,
                    checked_mul(amount1, total_supply) // reserve1,
                )
            if liquidity <= 0:
                raise ValidationError("INSUFFICIENT_LIQUIDITY_MINTED")
            self._mint(to, liquidity)

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self._record_k_last()
            self._emit(Mint, sender=sender, amount0=amount0, amount1=amount1)

        logger.info(
            f"Mint: pair {self.address.hex()[:8]} +({amount0}, {amount1}) "
            f"-> {liquidity} shares to {to.hex()[:8]}"
        )
        return liquidity

    def burn(self, sender: bytes, to: bytes) -> tuple[int, int]:
        """
        Redeem the shares held by the pair itself for a pro-rata amount of
        both token balances.

        Returns:
            (amount0, amount1) sent to `to`
        """
        with self._lock():
            reserve0, reserve1, _ = self.get_reserves()
            token0, token1 = self.token0, self.token1
            balance0 = self._balance(token0)
            balance1 = self._balance(token1)
            liquidity = self.balance_of(self.address)

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply
            if total_supply == 0:
                raise ValidationError("INSUFFICIENT_LIQUIDITY_BURNED")
            # pro-rata on balances, not reserves
            amount0 = checked_mul(liquidity, balance0) // total_supply
            amount1 = checked_mul(liquidity, balance1) // total_supply
            if not (amount0 > 0 and amount1 > 0):
                raise ValidationError("INSUFFICIENT_LIQUIDITY_BURNED")

            self._burn(self.address, liquidity)
            self._safe_transfer(token0, to, amount0)
            self._safe_transfer(token1, to, amount1)
            balance0 = self._balance(token0)
            balance1 = self._balance(token1)

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self._record_k_last()
            self._emit(Burn, sender=sender, amount0=amount0, amount1=amount1, to=to)

        logger.info(
            f"Burn: pair {self.address.hex()[:8]} {liquidity} shares "
            f"-> ({amount0}, {amount1}) to {to.hex()[:8]}"
        )
        return amount0, amount1

    def swap(self, sender: bytes, amount0_out: int, amount1_out: int,
             to: bytes, data: bytes = b''):
        """
        Pay out the requested amounts, optionally call back into `to`, then
        require that the fee-adjusted product of the new balances is no
        smaller than the product of the previous reserves.

        Args:
            sender: Initiator, reported in the Swap event and to the callback
            amount0_out: Amount of token0 to send to `to`
            amount1_out: Amount of token1 to send to `to`
            to: Recipient; must implement SwapCallee when `data` is non-empty
            data: Opaque payload forwarded to the flash-swap callback
        """
        with self._lock():
            require_uint256(amount0_out)
            require_uint256(amount1_out)
            if not (amount0_out > 0 or amount1_out > 0):
                raise ValidationError("INSUFFICIENT_OUTPUT_AMOUNT")
            reserve0, reserve1, _ = self.get_reserves()
            if not (amount0_out < reserve0 and amount1_out < reserve1):
                raise ValidationError("INSUFFICIENT_LIQUIDITY")

            token0, token1 = self.token0, self.token1
            if to == token0 or to == token1:
                raise ValidationError("INVALID_TO")
            if amount0_out > 0:
                self._safe_transfer(token0, to, amount0_out)
            if amount1_out > 0:
                self._safe_transfer(token1, to, amount1_out)
            if data:
                callee = self.host.contract_at(to)
                if not isinstance(callee, SwapCallee):
                    raise ValidationError("INVALID_CALLEE")
                callee.swap_callback(sender, amount0_out, amount1_out, data)
            balance0 = self._balance(token0)
            balance1 = self._balance(token1)

            amount0_in = max(balance0 - (reserve0 - amount0_out), 0)
            amount1_in = max(balance1 - (reserve1 - amount1_out), 0)
            if not (amount0_in > 0 or amount1_in > 0):
                raise ValidationError("INSUFFICIENT_INPUT_AMOUNT")

            balance0_adjusted = checked_sub(
                checked_mul(balance0, FEE_BASE), checked_mul(amount0_in, SWAP_FEE))
            balance1_adjusted = checked_sub(
                checked_mul(balance1, FEE_BASE), checked_mul(amount1_in, SWAP_FEE))
            if checked_mul(balance0_adjusted, balance1_adjusted) < \
                    checked_mul(checked_mul(reserve0, reserve1), FEE_BASE ** 2):
                raise InvariantViolation()

            self._update(balance0, balance1, reserve0, reserve1)
            self._emit(
                Swap,
                sender=sender,
                amount0_in=amount0_in,
                amount1_in=amount1_in,
                amount0_out=amount0_out,
                amount1_out=amount1_out,
                to=to,
            )

        logger.info(
            f"Swap: pair {self.address.hex()[:8]} in ({amount0_in}, {amount1_in}) "
            f"out ({amount0_out}, {amount1_out}) to {to.hex()[:8]}"
        )

    def skim(self, to: bytes):
        """Send balances in excess of the reserves to `to`."""
        with self._lock():
            token0, token1 = self.token0, self.token1
            reserve0, reserve1, _ = self.get_reserves()
            excess0 = checked_sub(self._balance(token0), reserve0)
            excess1 = checked_sub(self._balance(token1), reserve1)
            self._safe_transfer(token0, to, excess0)
            self._safe_transfer(token1, to, excess1)
        logger.debug(f"Skim: pair {self.address.hex()[:8]} ({excess0}, {excess1}) to {to.hex()[:8]}")

    def sync(self):
        """Set the reserves to the current balances."""
        with self._lock():
            reserve0, reserve1, _ = self.get_reserves()
            self._update(
                self._balance(self.token0), self._balance(self.token1),
                reserve0, reserve1)
