"""Application configuration using pydantic-settings.

Covers the chat bot, the Prophet order backend, the base currency of the
network and the pending order poller.
"""

from decimal import Decimal
from functools import lru_cache

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
    # Telegram
    # ======================
    telegram_bot_token: str = Field(default="", description="Telegram bot token from BotFather")

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/swapchat.db",
        description="Database connection URL for the pending order store",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    dry_run: bool = Field(
        default=True, description="Use the simulated wallet and backend (no real transactions)"
    )

    # ======================
    # Prophet backend
    # ======================
    backend_url: str = Field(
        default="https://api.safunet.com/v1/Prophet",
        description="Quote and order backend base URL",
    )
    backend_timeout: float = Field(default=30.0, description="Backend request timeout in seconds")

    # ======================
    # Network
    # ======================
    network_id: str = Field(default="mainnet", description="Kaspa network identifier")
    base_currency: str = Field(default="KAS", description="Native token of the network")
    base_currency_decimals: int = Field(default=8, description="Decimals of the native token")
    default_buy_token: str = Field(default="PINTL", description="Token offered by quick buy")
    priority_fee: Decimal = Field(
        default=Decimal("0.00002"), description="Priority fee for token transfers"
    )
    explorer_tx_url: str = Field(
        default="https://kas.fyi/transaction/{tx_hash}",
        description="Transaction explorer URL template",
    )

    # ======================
    # Minter addresses
    # ======================
    minter_address_kas: str = Field(
        default="kaspa:qpgmt2dn8wcqf0436n0kueap7yx82n7raurlj6aqjc3t3wm9y5ssqtg9e4lsm",
        description="Receives native currency for buy orders",
    )
    minter_address_krc20: str = Field(
        default="kaspa:qz9cqmddjppjyth8rngevfs767m5nvm0480nlgs5ve8d6aegv4g9xzu2tgg0u",
        description="Default receiver for KRC-20 transfers",
    )
    minter_address_bridged: str = Field(
        default="kaspa:qpy03sxk3z22pacz2vkn2nrqeglvptugyqy54xal2skha6xh0cr7wjueueg79",
        description="Receiver for bridged tokens (CUSDT, CUSDC, CETH, CBTC, CXCHNG)",
    )
    bridged_tokens: str = Field(
        default="CUSDT,CUSDC,CETH,CBTC,CXCHNG",
        description="Comma-separated list of bridged token symbols",
    )

    # ======================
    # Pollers
    # ======================
    status_poll_interval: float = Field(
        default=10.0, description="Seconds between pending order status checks"
    )
    token_refresh_interval: int = Field(
        default=300, description="Seconds the DEX asset list is cached"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def bridged_token_list(self) -> list[str]:
        """Parse bridged token symbols into a list."""
        return [t.strip().upper() for t in self.bridged_tokens.split(",") if t.strip()]

    def minter_address(self, symbol: str) -> str:
        """Get the minter address that receives a transfer of `symbol`."""
        symbol = symbol.upper().strip()
        if symbol == self.base_currency.upper():
            return self.minter_address_kas
        if symbol in self.bridged_token_list:
            return self.minter_address_bridged
        return self.minter_address_krc20

    def explorer_link(self, tx_hash: str) -> str:
        """Build the explorer URL for a transaction hash."""
        return self.explorer_tx_url.format(tx_hash=tx_hash)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "database_url": self._redact_url(self.database_url),
            "telegram_bot_token": "***" if self.telegram_bot_token else "(not set)",
            "backend": {
                "url": self.backend_url,
                "timeout": self.backend_timeout,
            },
            "network": {
                "id": self.network_id,
                "base_currency": self.base_currency,
                "decimals": self.base_currency_decimals,
                "explorer": self.explorer_tx_url,
            },
            "pollers": {
                "status_poll_interval": self.status_poll_interval,
                "token_refresh_interval": self.token_refresh_interval,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
