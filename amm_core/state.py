"""
Journaled world state.

All contract storage lives in one key/value map. Writes are recorded in a
journal so that any `transaction()` scope can be rolled back on failure;
scopes nest, and a failing inner scope discards only its own writes and
events. Committed writes are flushed to the database in one batch.
"""
import logging
from contextlib import contextmanager
from typing import Optional

import msgpack

from amm_core.db import DB

logger = logging.getLogger(__name__)

# msgpack ext type for integers wider than 64 bits (reserves products,
# UQ112x112 accumulators)
BIGINT_EXT = 1


def _pack_default(obj):
    if isinstance(obj, int) and obj >= 0:
        length = max(1, (obj.bit_length() + 7) // 8)
        return msgpack.ExtType(BIGINT_EXT, obj.to_bytes(length, 'big'))
    raise TypeError(f"Cannot encode {type(obj).__name__}: {obj!r}")


def _ext_hook(code: int, data: bytes):
    if code == BIGINT_EXT:
        return int.from_bytes(data, 'big')
    return msgpack.ExtType(code, data)


def encode_value(value) -> bytes:
    return msgpack.packb(value, use_bin_type=True, default=_pack_default)


def decode_value(raw: bytes):
    return msgpack.unpackb(raw, raw=False, ext_hook=_ext_hook)


def storage_key(address: bytes, slot: str, *keys) -> bytes:
    """Build the state key for `slot[keys...]` of the contract at `address`."""
    parts = [address, slot.encode()]
    for key in keys:
        parts.append(key if isinstance(key, bytes) else str(key).encode())
    return b'/'.join(parts)


class WorldState:
    def __init__(self, db: Optional[DB] = None):
        self.db = db
        self._cache: dict[bytes, Optional[bytes]] = {}
        self._journal: list[tuple[bytes, Optional[bytes]]] = []
        self._dirty: set[bytes] = set()
        self._events: list = []
        self.depth = 0

    def _load(self, key: bytes) -> Optional[bytes]:
        if key not in self._cache:
            self._cache[key] = self.db.get(key) if self.db is not None else None
        return self._cache[key]

    def get(self, key: bytes, default=None):
        raw = self._load(key)
        if raw is None:
            return default
        return decode_value(raw)

    def set(self, key: bytes, value):
        previous = self._load(key)
        if self.depth:
            self._journal.append((key, previous))
        self._cache[key] = None if value is None else encode_value(value)
        self._dirty.add(key)

    def delete(self, key: bytes):
        self.set(key, None)

    def emit(self, event):
        self._events.append(event)

    @property
    def events(self) -> list:
        return list(self._events)

    @contextmanager
    def transaction(self):
        """
        Savepoint scope. Every write and event made inside is discarded if
        the body raises; the exception is re-raised unchanged.
        """
        journal_mark = len(self._journal)
        events_mark = len(self._events)
        self.depth += 1
        try:
            yield self
        except BaseException:
            self._revert(journal_mark, events_mark)
            raise
        finally:
            self.depth -= 1
        if self.depth == 0:
            self._journal.clear()

    def _revert(self, journal_mark: int, events_mark: int):
        for key, previous in reversed(self._journal[journal_mark:]):
            self._cache[key] = previous
        del self._journal[journal_mark:]
        del self._events[events_mark:]

    def flush(self) -> int:
        """
        Write committed changes to the database and drop the events recorded
        so far; read `events` before committing. Returns the key count.
        """
        if self.depth:
            raise RuntimeError("Cannot flush state inside an open transaction")
        count = len(self._dirty)
        if self.db is not None and self._dirty:
            with self.db.write_batch() as batch:
                for key in self._dirty:
                    raw = self._cache[key]
                    if raw is None:
                        batch.delete(key)
                    else:
                        batch.put(key, raw)
            logger.debug(f"Flushed {count} state keys to {self.db.path}")
        self._dirty.clear()
        self._events.clear()
        return count
