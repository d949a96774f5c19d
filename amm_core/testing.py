"""
Helpers shared by the test modules.
"""
from amm_core.contract import Contract, SwapCallee
from amm_core.errors import LockedError

GENESIS_TIME = 1_700_000_000
ETHER = 10 ** 18
TOTAL_SUPPLY = 10_000 * ETHER


def make_address(n: int) -> bytes:
    return n.to_bytes(20, 'big')


WALLET = make_address(0x1001)
OTHER = make_address(0x1002)
FACTORY_ADDRESS = make_address(0xFAC7)
TOKEN_A_ADDRESS = make_address(0xA0)
TOKEN_B_ADDRESS = make_address(0xB0)


def add_liquidity(pair, token0, token1, amount0, amount1, to=WALLET):
    token0.transfer(WALLET, pair.address, amount0)
    token1.transfer(WALLET, pair.address, amount1)
    return pair.mint(WALLET, to)


def pair_events(host, pair, name=None):
    return [
        e for e in host.events
        if e.address == pair.address and (name is None or e.name == name)
    ]


class FlashBorrower(Contract, SwapCallee):
    """
    Receives a flash swap and repays `repay` of `repay_token` to the pair.
    `during_callback`, if set, is invoked inside the callback; a LockedError
    it raises is recorded instead of propagated when `catch_locked` is set.
    """

    def __init__(self, host, address, pair, repay_token=None, repay=0,
                 during_callback=None, catch_locked=True):
        super().__init__(host, address)
        self.pair = pair
        self.repay_token = repay_token
        self.repay = repay
        self.during_callback = during_callback
        self.catch_locked = catch_locked
        self.calls = []
        self.errors = []

    def swap_callback(self, sender, amount0, amount1, data):
        self.calls.append((sender, amount0, amount1, data))
        if self.during_callback is not None:
            try:
                self.during_callback()
            except LockedError as e:
                if not self.catch_locked:
                    raise
                self.errors.append(e.reason)
        if self.repay:
            self.host.get_contract(self.repay_token).transfer(
                self.address, self.pair.address, self.repay)
