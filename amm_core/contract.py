"""
Base class for stateful contracts living on a Host.
"""
from abc import ABC, abstractmethod

from amm_core.state import storage_key


class Contract:
    """
    A contract owns the state keys prefixed by its address. Storage helpers
    read and write through the host's WorldState so every write takes part in
    the enclosing transaction.
    """

    def __init__(self, host, address: bytes):
        self.host = host
        self.address = address

    @property
    def state(self):
        return self.host.state

    def _load(self, slot: str, *keys, default=0):
        return self.state.get(storage_key(self.address, slot, *keys), default)

    def _store(self, slot: str, *keys, value):
        self.state.set(storage_key(self.address, slot, *keys), value)

    def _emit(self, event_cls, **fields):
        self.state.emit(event_cls(address=self.address, **fields))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address.hex()})"


class SwapCallee(ABC):
    """Interface for contracts that receive flash-swap callbacks from a pair."""

    @abstractmethod
    def swap_callback(self, sender: bytes, amount0: int, amount1: int, data: bytes):
        """
        Called by the pair after the optimistic transfer of the requested
        outputs to this contract. Input must be delivered to the pair before
        returning.
        """
        pass
