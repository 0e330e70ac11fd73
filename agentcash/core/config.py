"""Application configuration using pydantic settings with structured sections."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False


class DatabaseSettings(BaseModel):
    url: str = Field(default="sqlite+aiosqlite:///./agentcash.db", alias="url")
    echo: bool = False
    pool_size: Optional[int] = None
    max_overflow: Optional[int] = None
    # seconds a SQLite connection waits on a locked database; keep it above
    # requests.ledger_timeout_seconds
    busy_timeout: float = 15.0


class SecuritySettings(BaseModel):
    secret_key: str = Field(default="change-me", min_length=8)
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class RequestSettings(BaseModel):
    """Per-kind protocol parameters. TTLs of ``None`` mean the kind never expires."""

    withdrawal_ttl_hours: Optional[float] = 24
    float_ttl_hours: Optional[float] = 24
    cancellation_ttl_hours: Optional[float] = None

    withdrawal_min_amount: int = 10_000
    withdrawal_max_amount: Optional[int] = None
    float_min_amount: int = 10_000
    float_max_amount: Optional[int] = None

    cancellation_window_minutes: int = 30
    confirmation_hash_rounds: int = Field(default=10, ge=4, le=16)
    ledger_timeout_seconds: float = 10.0
    reference_attempts: int = 5


class FeeSettings(BaseModel):
    """Fee table in basis points. Shares are the platform's part of the fee."""

    withdrawal_rate_bps: int = 200
    withdrawal_platform_share_bps: int = 4_000
    float_admin_rate_bps: int = 0
    float_admin_platform_share_bps: int = 10_000
    float_agent_rate_bps: int = 0
    float_agent_platform_share_bps: int = 10_000
    cancellation_rate_bps: int = 500
    cancellation_platform_share_bps: int = 6_000


class LedgerSettings(BaseModel):
    float_floor: int = 100_000
    activation_minimum: int = 250_000
    platform_owner_id: str = "platform"
    currency: str = "XAF"


class ExpirySettings(BaseModel):
    enabled: bool = True
    interval_seconds: float = 60.0
    batch_size: int = 200


class Settings(BaseSettings):
    """Top-level application settings with nested sections."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    project_name: str = "Agent Cash Request Service"
    api_prefix: str = "/api"

    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()
    requests: RequestSettings = RequestSettings()
    fees: FeeSettings = FeeSettings()
    ledger: LedgerSettings = LedgerSettings()
    expiry: ExpirySettings = ExpirySettings()

    @property
    def database_url(self) -> str:
        return self.database.url

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        return self.server.port

    @property
    def secret_key(self) -> str:
        return self.security.secret_key

    @property
    def algorithm(self) -> str:
        return self.security.algorithm

    @property
    def access_token_expire_minutes(self) -> int:
        return self.security.access_token_expire_minutes


@lru_cache()
def get_settings() -> Settings:
    return Settings()
