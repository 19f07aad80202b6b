import os

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy 1inch key variable when the primary one is unset."""

        super().model_post_init(__context)

        if not self.oneinch_api_key:
            fallback = os.getenv("ONE_INCH_API_KEY") or os.getenv("INCH_API_KEY")
            if fallback:
                object.__setattr__(self, "oneinch_api_key", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Session / wallet custody
    jwt_secret: str = Field(
        default="change-me-dexroute-development-secret",
        description="HS256 secret used to sign session bearer tokens",
        validation_alias=AliasChoices("jwt_secret", "JWT_SECRET", "DEXROUTE_JWT_SECRET"),
    )
    session_inactivity_hours: int = Field(
        default=24,
        ge=1,
        description="Sessions idle longer than this are no longer retrievable",
    )
    reaper_interval_seconds: int = Field(
        default=3600,
        ge=1,
        description="How often the session reaper purges idle sessions",
    )
    default_network_ids: List[int] = Field(
        default_factory=lambda: [8453, 369, 146],
        description="Networks bound to a new wallet when the caller names none",
    )

    # Quoting
    adapter_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Deadline for a single venue quote call",
    )
    preferred_venue: str = Field(
        default="9mm",
        description="Venue favored by the aggregator when within tolerance of the best quote",
    )
    enable_ninemm: bool = Field(default=True, description="Enable the 9mm swap API venue")
    enable_ninemm_v2: bool = Field(default=True, description="Enable on-chain 9mm V2 router quotes")
    enable_oneinch: bool = Field(default=True, description="Enable the 1inch venue")
    enable_paraswap: bool = Field(default=True, description="Enable the ParaSwap venue")

    # Venue endpoints
    oneinch_api_key: str = Field(default="", description="1inch developer portal API key")
    oneinch_base_url: str = Field(default="", description="Override the 1inch API base URL")
    paraswap_base_url: str = Field(default="", description="Override the ParaSwap API base URL")
    ninemm_base_urls: Dict[int, str] = Field(
        default_factory=dict,
        description="Per-network overrides for the 9mm swap API host",
    )

    # Market data
    price_api_base_url: str = Field(default="", description="Override the 9mm price API base URL")
    price_subgraph_urls: Dict[int, str] = Field(
        default_factory=dict,
        description="Per-network overrides for the 9mm GraphQL subgraph used as a price fallback",
    )
    enable_price_subgraph: bool = Field(default=True, description="Fall back to the subgraph when the price API fails")

    # Execution
    confirmation_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Maximum time to wait for a swap receipt before reporting pending",
    )
    confirmation_poll_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Interval between receipt polls",
    )
    swap_deadline_seconds: int = Field(
        default=1200,
        ge=60,
        description="Deadline passed to router swaps built locally",
    )
    allow_venue_substitution: bool = Field(
        default=False,
        description="Let the executor fall back to another venue's quote when the chosen venue cannot build a transaction",
    )
    rpc_timeout_seconds: float = Field(default=30.0, gt=0, description="JSON-RPC request timeout")

    # RPC endpoints (empty = registry default)
    ethereum_rpc_url: str = Field(default="", description="Ethereum mainnet RPC URL")
    base_rpc_url: str = Field(default="", description="Base RPC URL")
    pulsechain_rpc_url: str = Field(default="", description="PulseChain RPC URL")
    sonic_rpc_url: str = Field(default="", description="Sonic RPC URL")
    bsc_rpc_url: str = Field(default="", description="BNB Smart Chain RPC URL")
    polygon_rpc_url: str = Field(default="", description="Polygon RPC URL")
    arbitrum_rpc_url: str = Field(default="", description="Arbitrum RPC URL")
    optimism_rpc_url: str = Field(default="", description="Optimism RPC URL")
    avalanche_rpc_url: str = Field(default="", description="Avalanche C-Chain RPC URL")

    @property
    def has_oneinch_key(self) -> bool:
        return bool(self.oneinch_api_key)

    def rpc_url_override(self, network_name: str) -> Optional[str]:
        """Return the configured RPC URL for a registry network name, if any."""
        value = getattr(self, f"{network_name.lower()}_rpc_url", "")
        return value or None


# Global settings instance
settings = Settings()
