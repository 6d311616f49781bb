"""
Configuration management for spend planning.

Settings are read from the environment (prefix SPENDCORE_) or a .env file,
once per request. They only provide defaults: every spend still carries its
own SelectionPolicy.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from spendcore.constants import (
    BEST_FIT_SWAP_ATTEMPTS,
    DEFAULT_ACCOUNT_INDEX,
    DEFAULT_CHANGE_ADDRESS_COUNT,
    DEFAULT_COIN_TYPE,
    DEFAULT_DUST_THRESHOLD,
    DEFAULT_FEE_RATE,
    DEFAULT_MAX_INPUTS,
    DEFAULT_MIN_CONFIRMATIONS,
    MAX_FEE_ITERATIONS,
    PRIVACY_MIN_INPUTS,
)
from spendcore.fees import FeeModel, FeeModelType, get_fee_model
from spendcore.models import SelectionPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SPENDCORE_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    network: Literal["mainnet", "testnet", "signet", "regtest", "avian"] = "avian"

    dust_threshold: int = Field(default=DEFAULT_DUST_THRESHOLD, ge=0)
    fee_rate_per_byte: Decimal = Field(default=Decimal(DEFAULT_FEE_RATE), ge=0)
    fee_model: FeeModelType = FeeModelType.P2PKH

    max_inputs: int = Field(default=DEFAULT_MAX_INPUTS, ge=1)
    min_confirmations: int = Field(default=DEFAULT_MIN_CONFIRMATIONS, ge=0)

    privacy_min_inputs: int = Field(default=PRIVACY_MIN_INPUTS, ge=2)
    best_fit_swap_attempts: int = Field(default=BEST_FIT_SWAP_ATTEMPTS, ge=0)
    max_fee_iterations: int = Field(default=MAX_FEE_ITERATIONS, ge=1)

    # HD change addresses
    change_address_count: int = Field(default=DEFAULT_CHANGE_ADDRESS_COUNT, ge=1, le=100)
    account_index: int = Field(default=DEFAULT_ACCOUNT_INDEX, ge=0)
    coin_type: int = Field(default=DEFAULT_COIN_TYPE, ge=0)
    address_type: str = "p2pkh"

    log_level: str = "INFO"

    def get_fee_model(self) -> FeeModel:
        return get_fee_model(self.fee_model)

    def default_policy(self, **overrides: Any) -> SelectionPolicy:
        """Build a SelectionPolicy from these defaults, with per-spend overrides."""
        values: dict[str, Any] = {
            "fee_rate_per_byte": self.fee_rate_per_byte,
            "max_inputs": self.max_inputs,
            "min_confirmations": self.min_confirmations,
            "dust_threshold": self.dust_threshold,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return SelectionPolicy(**values)


def get_settings() -> Settings:
    return Settings()
