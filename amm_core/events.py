"""
Observable events emitted by tokens, pairs and the factory.

Each event records the address of the contract that emitted it.
"""
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class Event:
    address: bytes

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        data = asdict(self)
        data['event'] = self.name
        return data


@dataclass(frozen=True)
class Transfer(Event):
    from_: bytes
    to: bytes
    value: int


@dataclass(frozen=True)
class Approval(Event):
    owner: bytes
    spender: bytes
    value: int


@dataclass(frozen=True)
class Mint(Event):
    sender: bytes
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Burn(Event):
    sender: bytes
    amount0: int
    amount1: int
    to: bytes


@dataclass(frozen=True)
class Swap(Event):
    sender: bytes
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    to: bytes


@dataclass(frozen=True)
class Sync(Event):
    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class PairCreated(Event):
    token0: bytes
    token1: bytes
    pair: bytes
    index: int
