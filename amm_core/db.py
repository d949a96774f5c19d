"""
LevelDB-backed persistence for committed world state.
"""
import plyvel
import logging
from typing import Optional, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class DB:
    def __init__(self, db_path: str, create_if_missing: bool = True,
                 write_buffer_size: int = 64 * 1024 * 1024,  # 64MB
                 max_open_files: int = 1000):
        """
        Open (or create) the state database.

        Args:
            db_path: Path to database directory
            create_if_missing: Create database if it doesn't exist
            write_buffer_size: Size of write buffer
            max_open_files: Maximum number of open files
        """
        try:
            self._db = plyvel.DB(
                db_path,
                create_if_missing=create_if_missing,
                write_buffer_size=write_buffer_size,
                max_open_files=max_open_files,
                compression='snappy',
            )
            self._closed = False
            self.path = db_path
            logger.info(f"Database opened at {db_path}")
        except Exception as e:
            logger.error(f"Failed to open database at {db_path}: {e}")
            raise

    def _check_open(self):
        if self._closed:
            raise RuntimeError("Database is closed")

    def get(self, key: bytes) -> Optional[bytes]:
        """
        Get value by key.

        Returns None if key doesn't exist.
        """
        self._check_open()
        try:
            return self._db.get(key)
        except Exception as e:
            logger.error(f"Error getting key {key.hex()[:16]}: {e}")
            raise

    def put(self, key: bytes, value: bytes):
        self._check_open()
        try:
            self._db.put(key, value)
        except Exception as e:
            logger.error(f"Error putting key {key.hex()[:16]}: {e}")
            raise

    def delete(self, key: bytes):
        self._check_open()
        try:
            self._db.delete(key)
        except Exception as e:
            logger.error(f"Error deleting key {key.hex()[:16]}: {e}")
            raise

    def exists(self, key: bytes) -> bool:
        return self.get(key) is not None

    @contextmanager
    def write_batch(self):
        """
        Context manager for atomic batch writes. Nothing is written if the
        body raises.

        Example:
            with db.write_batch() as batch:
                batch.put(b'key1', b'value1')
                batch.delete(b'key2')
        """
        self._check_open()
        batch = self._db.write_batch(transaction=True)
        try:
            yield batch
        except Exception as e:
            logger.error(f"Error in batch write: {e}")
            batch.clear()
            raise
        batch.write()

    def iterator(self, prefix: Optional[bytes] = None) -> Iterator[tuple[bytes, bytes]]:
        """Iterate (key, value) pairs, optionally restricted to a key prefix."""
        self._check_open()
        if prefix:
            return self._db.iterator(prefix=prefix)
        return self._db.iterator()

    def close(self):
        if not self._closed:
            try:
                self._db.close()
                self._closed = True
                logger.info("Database closed")
            except Exception as e:
                logger.error(f"Error closing database: {e}")
                raise

    def is_closed(self) -> bool:
        return self._closed

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
