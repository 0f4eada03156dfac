"""
Configuration Management

Handles loading configuration from environment variables and config files.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional
import json

from dotenv import find_dotenv, load_dotenv

from .transfer.header import CHUNK_SIZE, MAX_HEADER_SIZE


@dataclass
class Config:
    """
    Transfer configuration.

    Configuration priority (highest to lowest):
    1. Environment variables (FILEXFER_*)
    2. Config file (JSON)
    3. Default values
    """
    # Network
    host: str = '0.0.0.0'
    port: int = 8469

    # Receiving
    output_dir: Path = field(default_factory=lambda: Path('.'))

    # Protocol
    chunk_size: int = CHUNK_SIZE
    max_header_size: int = MAX_HEADER_SIZE

    # Logging
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> 'Config':
        """Load configuration from environment variables and a .env file."""
        load_dotenv(env_file or find_dotenv(usecwd=True))

        config = cls()

        config.host = os.getenv('FILEXFER_HOST', config.host)
        config.port = int(os.getenv('FILEXFER_PORT', config.port))

        output_dir = os.getenv('FILEXFER_OUTPUT_DIR')
        if output_dir:
            config.output_dir = Path(output_dir)

        config.chunk_size = int(os.getenv('FILEXFER_CHUNK_SIZE', config.chunk_size))
        config.max_header_size = int(
            os.getenv('FILEXFER_MAX_HEADER_SIZE', config.max_header_size)
        )

        config.log_level = os.getenv('FILEXFER_LOG_LEVEL', config.log_level)

        return config

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Load configuration from a JSON file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = json.load(f)

        config = cls()

        config.host = data.get('host', config.host)
        config.port = data.get('port', config.port)

        if 'output_dir' in data:
            config.output_dir = Path(data['output_dir'])

        config.chunk_size = data.get('chunk_size', config.chunk_size)
        config.max_header_size = data.get('max_header_size', config.max_header_size)

        config.log_level = data.get('log_level', config.log_level)

        return config

    def validate(self):
        """
        Check values that would otherwise fail later in a confusing way.

        Raises:
            ValueError: on a non-positive size or an out-of-range port
        """
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.max_header_size <= 0:
            raise ValueError(f"max_header_size must be positive, got {self.max_header_size}")
        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be in 1..65535, got {self.port}")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'host': self.host,
            'port': self.port,
            'output_dir': str(self.output_dir),
            'chunk_size': self.chunk_size,
            'max_header_size': self.max_header_size,
            'log_level': self.log_level,
        }

    def save(self, path: Path):
        """Save configuration to a JSON file."""
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from file and environment.

    Environment variables override file settings.

    Raises:
        ValueError: if a value is malformed or out of range
    """
    config = Config()

    if config_path and config_path.exists():
        config = Config.from_file(config_path)

    env_config = Config.from_env()
    defaults = Config()

    # Env takes precedence for non-default values
    for key in ['host', 'port', 'output_dir', 'chunk_size',
                'max_header_size', 'log_level']:
        env_val = getattr(env_config, key)
        if env_val != getattr(defaults, key):
            setattr(config, key, env_val)

    config.validate()
    return config
