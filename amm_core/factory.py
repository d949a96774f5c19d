"""
Pair registry: one pair per unordered pair of tokens, at a deterministic
address, plus the protocol fee recipient settings every pair consults.
"""
import logging

from amm_core.contract import Contract
from amm_core.crypto import ZERO_ADDRESS
from amm_core.errors import ValidationError
from amm_core.events import PairCreated
from amm_core.library import pair_for, sort_tokens
from amm_core.pair import Pair

logger = logging.getLogger(__name__)


class Factory(Contract):
    def __init__(self, host, address: bytes, fee_to_setter: bytes):
        super().__init__(host, address)
        if self._load('fee_to_setter', default=None) is None:
            self._store('fee_to_setter', value=fee_to_setter)
        # re-attach pairs already recorded in persisted state
        for index in range(self.all_pairs_length()):
            pair_address = self.all_pairs(index)
            if host.contract_at(pair_address) is None:
                host.attach(Pair(host, pair_address, factory=address))

    @property
    def fee_to(self) -> bytes:
        return self._load('fee_to', default=ZERO_ADDRESS)

    @property
    def fee_to_setter(self) -> bytes:
        return self._load('fee_to_setter', default=ZERO_ADDRESS)

    def get_pair(self, token_a: bytes, token_b: bytes) -> bytes:
        return self._load('pair', token_a, token_b, default=ZERO_ADDRESS)

    def all_pairs(self, index: int) -> bytes:
        if not 0 <= index < self.all_pairs_length():
            raise IndexError(f"No pair at index {index}")
        return self._load('all_pairs', index)

    def all_pairs_length(self) -> int:
        return self._load('all_pairs_length')

    def pair_at(self, address: bytes) -> Pair:
        return self.host.get_contract(address)

    def create_pair(self, sender: bytes, token_a: bytes, token_b: bytes) -> bytes:
        """
        Deploy and initialize the pair for two tokens.

        Raises:
            ValidationError: IDENTICAL_ADDRESSES, ZERO_ADDRESS or PAIR_EXISTS
        """
        with self.state.transaction():
            token0, token1 = sort_tokens(token_a, token_b)
            if self.get_pair(token0, token1) != ZERO_ADDRESS:
                raise ValidationError("PAIR_EXISTS")

            address = pair_for(self.address, token0, token1)
            pair = Pair(self.host, address, factory=self.address)
            self.host.deploy(pair)
            pair.initialize(self.address, token0, token1)

            self._store('pair', token0, token1, value=address)
            self._store('pair', token1, token0, value=address)
            index = self.all_pairs_length()
            self._store('all_pairs', index, value=address)
            self._store('all_pairs_length', value=index + 1)
            self._emit(PairCreated, token0=token0, token1=token1, pair=address, index=index + 1)

        logger.info(
            f"Pair created: {token0.hex()[:8]}/{token1.hex()[:8]} at {address.hex()} "
            f"(#{index + 1}) by {sender.hex()[:8]}"
        )
        return address

    def set_fee_to(self, sender: bytes, fee_to: bytes):
        with self.state.transaction():
            if sender != self.fee_to_setter:
                raise ValidationError("FORBIDDEN")
            self._store('fee_to', value=fee_to)
        logger.info(f"Protocol fee recipient set to {fee_to.hex()}")

    def set_fee_to_setter(self, sender: bytes, fee_to_setter: bytes):
        with self.state.transaction():
            if sender != self.fee_to_setter:
                raise ValidationError("FORBIDDEN")
            self._store('fee_to_setter', value=fee_to_setter)
