"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All endpoints and secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Core functions never read settings: values are passed in explicitly by the shell

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://x402:x402@db:5432/x402"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers give postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Chain
    rpc_url: str = "https://ethereum-sepolia-rpc.publicnode.com"
    chain_id: int = 11155111
    contract_address: str = ZERO_ADDRESS
    block_start: int = 0

    # Ingestion
    confirmation_blocks: int = 3
    poll_interval_seconds: float = 12.0
    log_chunk_size: int = 2000
    ingestor_enabled: bool = True

    # Chain RPC resilience
    rpc_timeout_seconds: int = 10
    rpc_max_retries: int = 3
    rpc_base_delay_ms: int = 500
    rpc_max_delay_ms: int = 10_000

    @field_validator("confirmation_blocks", "block_start")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("log_chunk_size")
    @classmethod
    def positive_chunk(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def contract_configured(self) -> bool:
        return self.contract_address.lower() != ZERO_ADDRESS


@lru_cache
def get_settings() -> Settings:
    return Settings()
