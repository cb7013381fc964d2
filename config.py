"""
Centralized configuration for the GameCP billing bridge
All settings come from environment variables (optionally loaded from .env)
"""

import os
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, '')
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid value for {name}={raw!r}, using default {default}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass(frozen=True)
class GameCPConfig:
    """Remote management API settings"""
    connect_timeout: float = 10.0
    request_timeout: float = 30.0
    server_type: str = 'gamecp'
    module_name: str = 'gamecp'
    # When set, hooks talk to a MockGateway loaded from this JSON file
    mock_responses_file: Optional[str] = None


@dataclass(frozen=True)
class DatabaseConfig:
    url: Optional[str] = None
    pool_min: int = 1
    pool_max: int = 5
    connect_timeout: int = 10
    module_log_to_db: bool = False


@dataclass(frozen=True)
class BillingApiConfig:
    """Billing system command API (UpdateClientProduct and friends)"""
    url: Optional[str] = None
    identifier: Optional[str] = None
    secret: Optional[str] = None
    timeout: float = 15.0

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.identifier and self.secret)


@dataclass(frozen=True)
class ServerConfig:
    host: str = '0.0.0.0'
    port: int = 5000
    bridge_token: Optional[str] = None
    log_level: str = 'INFO'


@dataclass(frozen=True)
class AppConfig:
    gamecp: GameCPConfig = field(default_factory=GameCPConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    billing_api: BillingApiConfig = field(default_factory=BillingApiConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def load_config() -> AppConfig:
    """Build configuration from the current environment"""
    load_dotenv(override=False)

    gamecp = GameCPConfig(
        connect_timeout=_env_float('GAMECP_CONNECT_TIMEOUT', 10.0),
        request_timeout=_env_float('GAMECP_REQUEST_TIMEOUT', 30.0),
        server_type=os.getenv('GAMECP_SERVER_TYPE', 'gamecp'),
        module_name=os.getenv('GAMECP_MODULE_NAME', 'gamecp'),
        mock_responses_file=os.getenv('GAMECP_MOCK_RESPONSES_FILE') or None,
    )
    database = DatabaseConfig(
        url=os.getenv('DATABASE_URL') or None,
        pool_min=_env_int('DB_POOL_MIN', 1),
        pool_max=_env_int('DB_POOL_MAX', 5),
        module_log_to_db=_env_bool('GAMECP_MODULE_LOG_TO_DB'),
    )
    billing_api = BillingApiConfig(
        url=os.getenv('WHMCS_API_URL') or None,
        identifier=os.getenv('WHMCS_API_IDENTIFIER') or None,
        secret=os.getenv('WHMCS_API_SECRET') or None,
        timeout=_env_float('WHMCS_API_TIMEOUT', 15.0),
    )
    server = ServerConfig(
        host=os.getenv('HOST', '0.0.0.0'),
        port=_env_int('PORT', 5000),
        bridge_token=os.getenv('BRIDGE_API_TOKEN') or None,
        log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )

    if gamecp.mock_responses_file:
        logger.warning(f"⚠️ GameCP mock gateway enabled from {gamecp.mock_responses_file}")
    if not database.url:
        logger.warning("⚠️ DATABASE_URL not set - billing store lookups disabled")

    return AppConfig(gamecp=gamecp, database=database, billing_api=billing_api, server=server)


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the process-wide configuration"""
    return load_config()
