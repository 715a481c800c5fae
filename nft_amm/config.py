"""
Configuration management for a pool node.
"""
import json
import os
from typing import Optional
from dataclasses import dataclass, asdict


@dataclass
class PoolConfig:
    """Pool identity and allow-list."""
    pool_address: str = "00" * 19 + "05"
    merkle_root: str = ""  # hex; empty means open pool
    base_token: str = "BASE"
    nft_collection: str = "NFT"
    chain_id: int = 1

    @property
    def pool_address_bytes(self) -> bytes:
        return bytes.fromhex(self.pool_address)

    @property
    def merkle_root_bytes(self) -> Optional[bytes]:
        if not self.merkle_root:
            return None
        root = bytes.fromhex(self.merkle_root.removeprefix("0x"))
        if len(root) != 32:
            raise ValueError(f"Merkle root must be 32 bytes, got {len(root)}")
        return root


@dataclass
class DatabaseConfig:
    """Database configuration."""
    path: str = "./pool_data"
    write_buffer_size: int = 64 * 1024 * 1024  # 64MB
    max_open_files: int = 1000


@dataclass
class MonitoringConfig:
    """Monitoring configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 9090


@dataclass
class Config:
    """Main configuration."""
    pool: PoolConfig
    database: DatabaseConfig
    monitoring: MonitoringConfig

    @classmethod
    def default(cls) -> 'Config':
        """Create default configuration."""
        return cls(
            pool=PoolConfig(),
            database=DatabaseConfig(),
            monitoring=MonitoringConfig()
        )

    @classmethod
    def from_dict(cls, data: dict) -> 'Config':
        return cls(
            pool=PoolConfig(**data.get('pool', {})),
            database=DatabaseConfig(**data.get('database', {})),
            monitoring=MonitoringConfig(**data.get('monitoring', {}))
        )

    @classmethod
    def from_file(cls, path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def to_file(self, path: str):
        """Save configuration to JSON file."""
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'pool': asdict(self.pool),
            'database': asdict(self.database),
            'monitoring': asdict(self.monitoring)
        }
