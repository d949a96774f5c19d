"""
Configuration management for the AMM host.

Protocol constants (trading fee, protocol fee share, minimum liquidity) are
not configurable and live with the pair.
"""
import json
import os
from dataclasses import dataclass, asdict, field
from typing import Optional


@dataclass
class ChainConfig:
    """Host configuration."""
    chain_id: int = 1
    genesis_timestamp: Optional[int] = None  # None = wall clock


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./amm_data"
    enabled: bool = False
    write_buffer_size: int = 64 * 1024 * 1024  # 64MB
    max_open_files: int = 1000


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    host: str = "127.0.0.1"
    port: int = 9090
    enabled: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Config:
    """Main configuration."""
    chain: ChainConfig = field(default_factory=ChainConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls()

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)

        return cls(
            chain=ChainConfig(**data.get('chain', {})),
            database=DatabaseConfig(**data.get('database', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {})),
            logging=LoggingConfig(**data.get('logging', {})),
        )

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        return {
            'chain': asdict(self.chain),
            'database': asdict(self.database),
            'monitoring': asdict(self.monitoring),
            'logging': asdict(self.logging),
        }
