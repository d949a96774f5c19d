"""
Per-pair reentrancy guard.
"""
from amm_core.errors import LockedError


class ReentrancyGuard:
    """
    Mutual-exclusion token owned by a single pair. Use as a context manager
    so the token is released on every exit path:

        with pair.guard:
            ...
    """

    def __init__(self):
        self._locked = False

    @property
    def locked(self) -> bool:
        return self._locked

    def acquire(self):
        if self._locked:
            raise LockedError()
        self._locked = True

    def release(self):
        self._locked = False

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
