"""
Configuration management for the plasma wallet.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from web3 import Web3

from plasmacore.constants import EXIT_GAS_LIMIT, FEE_SCHEDULE_VERSION, GAS_STATION_URL


class PlasmaConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLASMA_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # Root chain network the provider must be connected to (chain id)
    expected_network_id: int = Field(default=1, ge=1)
    plasma_address: str

    watcher_url: str = "http://127.0.0.1:7534"

    # Injected provider endpoint (local wallet JSON-RPC)
    rpc_url: str = "http://127.0.0.1:1248"

    # Remote session: bridge for pairing/signing, proxy for read-only RPC
    session_bridge_url: str = "http://127.0.0.1:5001"
    rpc_proxy_url: str = "http://127.0.0.1:8545"

    gas_station_url: str = GAS_STATION_URL

    fee_schedule_version: str = FEE_SCHEDULE_VERSION
    exit_gas_limit: int = Field(default=EXIT_GAS_LIMIT, ge=21_000)

    account_poll_interval: float = Field(default=2.0, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    receipt_timeout: float = Field(default=600.0, gt=0)

    log_level: str = "INFO"

    @field_validator("plasma_address")
    @classmethod
    def checksum_plasma_address(cls, v: str) -> str:
        if not Web3.is_address(v):
            raise ValueError(f"Invalid plasma framework address: {v}")
        return Web3.to_checksum_address(v)

    @field_validator(
        "watcher_url", "rpc_url", "session_bridge_url", "rpc_proxy_url", "gas_station_url"
    )
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")
