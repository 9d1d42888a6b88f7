"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Endpoints and contract address come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): one Settings instance per process
    - contract_address is validated and lowercased at load time

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - signer_rpc_url unset means "no signing agent present": the app still serves reads
    - confirmation_timeout_seconds <= 0 disables the timeout (wait indefinitely)
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from marketplace.core.validation import is_valid_identity


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="MARKET_", case_sensitive=False,
    )

    # Ledger
    ledger_rpc_url: str = "http://127.0.0.1:8545"
    contract_address: str = "0xae0b730bf760e960d29ad72e9cd7288c061fb624"
    rpc_timeout_seconds: float = 30.0
    max_concurrent_reads: int = 8

    @field_validator("contract_address")
    @classmethod
    def normalize_contract_address(cls, v: str) -> str:
        if not is_valid_identity(v):
            raise ValueError(f"contract_address is not a valid address: {v}")
        return v.lower()

    # Signing agent (wallet bridge)
    signer_rpc_url: str | None = None
    account_poll_interval_ms: int = 1000

    # Transaction lifecycle
    confirmation_timeout_seconds: float = 120.0
    receipt_poll_interval_ms: int = 1000

    # API
    cors_origins: list[str] = ["http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def confirmation_timeout(self) -> float | None:
        if self.confirmation_timeout_seconds <= 0:
            return None
        return self.confirmation_timeout_seconds


@lru_cache
def get_settings() -> Settings:
    return Settings()
