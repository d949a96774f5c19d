"""
Execution host for pairs, tokens and the factory.

The host owns the world state, the block clock and the registry of deployed
contracts. `execute` is the top-level entry point for an externally
submitted operation: it runs atomically, logs rejections and feeds the
monitor.
"""
import logging
import time
from typing import Optional

from amm_core.contract import Contract
from amm_core.db import DB
from amm_core.errors import ValidationError
from amm_core.state import WorldState, storage_key

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

CODE_SLOT = 'code'


class Host:
    def __init__(self, db: DB = None, chain_id: int = 1,
                 block_timestamp: Optional[int] = None, monitor=None):
        self.db = db
        self.chain_id = chain_id
        self.state = WorldState(db)
        self.monitor = monitor
        self._contracts: dict[bytes, Contract] = {}
        self._block_timestamp = int(time.time()) if block_timestamp is None else block_timestamp

    @classmethod
    def from_config(cls, config) -> 'Host':
        """Build a host (database, monitor, log level) from a Config."""
        from amm_core.monitoring import Monitor

        logging.getLogger('amm_core').setLevel(config.logging.level)
        db = None
        if config.database.enabled:
            db = DB(
                config.database.path,
                write_buffer_size=config.database.write_buffer_size,
                max_open_files=config.database.max_open_files,
            )
        monitor = None
        if config.monitoring.enabled:
            logger.info(f"Initializing Monitor with host={config.monitoring.host}, port={config.monitoring.port}")
            monitor = Monitor(host=config.monitoring.host, port=config.monitoring.port)
            monitor.start_server()
        return cls(db=db, chain_id=config.chain.chain_id,
                   block_timestamp=config.chain.genesis_timestamp, monitor=monitor)

    # ------------------------------------------------------------------
    # Clock

    @property
    def block_timestamp(self) -> int:
        return self._block_timestamp

    def set_block_timestamp(self, timestamp: int):
        if timestamp < self._block_timestamp:
            raise ValueError("Block timestamp cannot go backwards")
        self._block_timestamp = timestamp

    def advance_time(self, seconds: int):
        self.set_block_timestamp(self._block_timestamp + seconds)

    # ------------------------------------------------------------------
    # Contracts

    def deploy(self, contract: Contract) -> Contract:
        """Register a new contract; its code marker takes part in rollback."""
        key = storage_key(contract.address, CODE_SLOT)
        if self.state.get(key) is not None:
            raise ValidationError("CONTRACT_EXISTS")
        self.state.set(key, type(contract).__name__)
        self._contracts[contract.address] = contract
        logger.debug(f"Deployed {contract!r}")
        return contract

    def attach(self, contract: Contract) -> Contract:
        """Bind an object to a contract whose code is already in state."""
        if self.state.get(storage_key(contract.address, CODE_SLOT)) is None:
            raise ValidationError("NO_CONTRACT")
        self._contracts[contract.address] = contract
        return contract

    def contract_at(self, address: bytes) -> Optional[Contract]:
        contract = self._contracts.get(address)
        if contract is None or self.state.get(storage_key(address, CODE_SLOT)) is None:
            return None
        return contract

    def get_contract(self, address: bytes) -> Contract:
        contract = self.contract_at(address)
        if contract is None:
            raise ValidationError("NO_CONTRACT")
        return contract

    def contracts(self) -> list[Contract]:
        return [c for c in self._contracts.values() if self.contract_at(c.address) is c]

    @property
    def events(self) -> list:
        return self.state.events

    # ------------------------------------------------------------------
    # Execution

    def execute(self, fn, *args, **kwargs):
        """
        Run one externally submitted operation atomically.

        Example:
            host.execute(pair.swap, trader, 0, amount_out, trader)
        """
        operation = getattr(fn, '__name__', repr(fn))
        start = time.time()
        try:
            with self.state.transaction():
                result = fn(*args, **kwargs)
        except Exception as e:
            logger.warning(f"Operation {operation} failed: {e}")
            if self.monitor:
                self.monitor.record_operation(operation, "failed", time.time() - start)
            raise

        if self.monitor:
            self.monitor.record_operation(operation, "success", time.time() - start)
            self.monitor.update(self)
        return result

    def commit(self) -> int:
        """Flush committed state to the database; clears `events`."""
        return self.state.flush()

    def close(self):
        if self.monitor:
            self.monitor.stop_server()
        if self.db:
            self.commit()
            self.db.close()
