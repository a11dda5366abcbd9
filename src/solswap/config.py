"""Application configuration using pydantic-settings.

Settings are read once at the entry point and handed to the swap controller
as explicit values, so several controllers can run in one process.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug logging")
    dry_run: bool = Field(default=True, description="Sign transactions but never submit bundles")

    # ======================
    # Endpoints
    # ======================
    sol_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", description="Solana RPC URL"
    )
    jupiter_api_url: str = Field(
        default="https://quote-api.jup.ag/v6", description="Jupiter swap API URL"
    )
    jupiter_api_key: str = Field(default="", description="Optional Jupiter API key")
    jito_block_engine_url: str = Field(
        default="https://mainnet.block-engine.jito.wtf", description="Jito block engine URL"
    )
    http_timeout_seconds: float = Field(default=30.0, description="HTTP request timeout")

    # ======================
    # Wallet
    # ======================
    wallet_private_key: Optional[str] = Field(
        default=None, description="Base58 encoded 64-byte Solana secret key"
    )
    wallet_seed_phrase: Optional[str] = Field(
        default=None, description="BIP39 seed phrase, used when no private key is set"
    )
    wallet_account_index: int = Field(default=0, description="BIP44 account index for seed derivation")

    # ======================
    # Swap execution
    # ======================
    default_slippage_bps: int = Field(default=100, description="Base slippage tolerance (1%)")
    max_retries: int = Field(default=3, ge=1, description="Maximum swap attempts")
    retry_backoff_seconds: float = Field(default=2.0, ge=0, description="Wait between attempts")
    simulation_attempts: int = Field(
        default=5, ge=1, description="Simulation calls allowed on RPC transport errors"
    )
    blockhash_commitment: str = Field(default="finalized", description="Commitment for blockhash")

    # ======================
    # Fees
    # ======================
    default_priority_fee_micro_lamports: int = Field(
        default=10000, description="Priority fee when no samples are available"
    )
    priority_fee_window: int = Field(default=150, ge=1, description="Trailing fee samples used")

    # ======================
    # Jito bundles
    # ======================
    jito_tip_lamports: int = Field(default=10000, ge=0, description="Tip attached to each bundle")
    bundle_confirmation_attempts: int = Field(
        default=3, ge=1, description="Bundle status polls before giving up"
    )
    bundle_poll_delay_seconds: float = Field(
        default=15.0, ge=0, description="Wait before each bundle status poll"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_wallet(self) -> bool:
        """Check if a signing key is configured."""
        if self.wallet_private_key:
            return True
        return bool(self.wallet_seed_phrase and len(self.wallet_seed_phrase.split()) >= 12)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "wallet_configured": self.has_wallet,
            "wallet_private_key": "***" if self.wallet_private_key else "(not set)",
            "wallet_seed_phrase": "***" if self.wallet_seed_phrase else "(not set)",
            "endpoints": {
                "solana_rpc": self._redact_url(self.sol_rpc_url),
                "jupiter": self.jupiter_api_url,
                "jupiter_api_key": "***" if self.jupiter_api_key else "(not set)",
                "jito": self.jito_block_engine_url,
            },
            "swap": {
                "slippage_bps": self.default_slippage_bps,
                "max_retries": self.max_retries,
                "retry_backoff_seconds": self.retry_backoff_seconds,
                "simulation_attempts": self.simulation_attempts,
            },
            "fees": {
                "default_priority_fee": self.default_priority_fee_micro_lamports,
                "window": self.priority_fee_window,
            },
            "bundles": {
                "tip_lamports": self.jito_tip_lamports,
                "confirmation_attempts": self.bundle_confirmation_attempts,
                "poll_delay_seconds": self.bundle_poll_delay_seconds,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact API keys embedded in RPC URLs."""
        if "api-key=" in url:
            base, _ = url.split("api-key=", 1)
            return f"{base}api-key=***"
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            _, host = rest.rsplit("@", 1)
            return f"{proto}://***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
