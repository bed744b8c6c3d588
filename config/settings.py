#!/usr/bin/env python3
"""
Configuration Manager for SQLGrid
Handles environment variables and paths centrally
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_VALID_POLICIES = ('preserve', 'canonical')

def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')

@dataclass
class SQLGridConfig:
    """SQLGrid configuration settings"""

    # Base paths - use environment or defaults
    base_dir: Path = None

    # Parsing and regeneration
    dialect: str = "mysql"
    regeneration: str = "preserve"  # preserve, canonical

    # Document store
    last_writer_wins: bool = False
    poll_interval: float = 1.0

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8765

    # Runtime settings
    debug_mode: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        """Initialize paths and load environment variables"""
        if self.base_dir is None:
            default_root = Path(__file__).parent.parent
            self.base_dir = Path(os.environ.get('SQLGRID_HOME', default_root))
        else:
            self.base_dir = Path(self.base_dir)

        self.dialect = os.environ.get('SQLGRID_DIALECT', self.dialect)
        self.regeneration = os.environ.get('SQLGRID_REGENERATION', self.regeneration).lower()
        if self.regeneration not in _VALID_POLICIES:
            logger.warning(f"Unknown regeneration policy {self.regeneration!r}, using 'preserve'")
            self.regeneration = 'preserve'

        self.last_writer_wins = _env_flag('SQLGRID_LAST_WRITER_WINS', self.last_writer_wins)
        self.poll_interval = float(os.environ.get('SQLGRID_POLL_INTERVAL', str(self.poll_interval)))

        self.host = os.environ.get('SQLGRID_HOST', self.host)
        self.port = int(os.environ.get('SQLGRID_PORT', str(self.port)))

        self.debug_mode = _env_flag('SQLGRID_DEBUG', self.debug_mode)
        self.log_level = os.environ.get('SQLGRID_LOG_LEVEL', self.log_level).upper()
        if self.debug_mode:
            self.log_level = 'DEBUG'

    def get_safe_dict(self) -> Dict[str, Any]:
        """Get configuration as a plain dict (side-effect free)"""
        return {
            'base_dir': str(self.base_dir),
            'dialect': self.dialect,
            'regeneration': self.regeneration,
            'last_writer_wins': self.last_writer_wins,
            'poll_interval': self.poll_interval,
            'host': self.host,
            'port': self.port,
            'debug_mode': self.debug_mode,
            'log_level': self.log_level,
        }

class ConfigManager:
    """Singleton configuration manager"""

    _instance: Optional['ConfigManager'] = None
    _config: Optional[SQLGridConfig] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._config is None:
            self.load_config()

    def load_config(self):
        """Load configuration from the environment.

        Priority (highest to lowest):
        1. Environment variables (SQLGRID_*)
        2. .env file (loaded into os.environ before config creation)
        3. SQLGridConfig dataclass defaults
        """
        default_base = Path(__file__).parent.parent
        base_dir = Path(os.environ.get('SQLGRID_HOME', default_base))
        env_file = base_dir / '.env'
        if env_file.exists():
            self._load_env_file(env_file)

        self._config = SQLGridConfig()

    def _load_env_file(self, env_file: Path):
        """Load environment variables from .env file.

        Only sets values for keys not already in os.environ,
        ensuring exported env vars take precedence over .env file.
        """
        try:
            with open(env_file, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        key = key.strip()
                        if key not in os.environ:
                            os.environ[key] = value.strip()
        except OSError as e:
            logger.warning(f"Could not load .env file: {e}")

    @property
    def config(self) -> SQLGridConfig:
        """Get the current configuration"""
        if self._config is None:
            self.load_config()
        return self._config

    @classmethod
    def reset(cls):
        """Drop the cached configuration so the next access re-reads the environment"""
        if cls._instance is not None:
            cls._instance._config = None


# Global config instance
def get_config() -> SQLGridConfig:
    """Get the global configuration instance"""
    return ConfigManager().config


def configure_logging(config: Optional[SQLGridConfig] = None) -> None:
    """Configure root logging from the settings"""
    config = config or get_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


if __name__ == "__main__":
    config = get_config()
    print("SQLGrid Configuration:")
    print("-" * 40)
    for key, value in config.get_safe_dict().items():
        print(f"{key}: {value}")
