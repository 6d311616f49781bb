"""
Tests for settings.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from spendcore.config import Settings
from spendcore.fees import P2WPKH_FEE_MODEL
from spendcore.models import CoinSelectionStrategy


def test_defaults() -> None:
    """Test that defaults match the wallet's policy constants."""
    settings = Settings(_env_file=None)

    assert settings.network == "avian"
    assert settings.dust_threshold == 10_000
    assert settings.fee_rate_per_byte == Decimal(10)
    assert settings.max_inputs == 20
    assert settings.min_confirmations == 0
    assert settings.change_address_count == 5
    assert settings.coin_type == 921


def test_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPENDCORE_FEE_RATE_PER_BYTE", "2.5")
    monkeypatch.setenv("SPENDCORE_FEE_MODEL", "p2wpkh")
    monkeypatch.setenv("SPENDCORE_NETWORK", "regtest")

    settings = Settings(_env_file=None)

    assert settings.fee_rate_per_byte == Decimal("2.5")
    assert settings.get_fee_model() is P2WPKH_FEE_MODEL
    assert settings.network == "regtest"


def test_default_policy() -> None:
    settings = Settings(_env_file=None, dust_threshold=5_000, max_inputs=7)

    policy = settings.default_policy()

    assert policy.strategy == CoinSelectionStrategy.BEST_FIT
    assert policy.dust_threshold == 5_000
    assert policy.max_inputs == 7


def test_default_policy_overrides() -> None:
    """Test that explicit overrides win and None overrides are ignored."""
    settings = Settings(_env_file=None)

    policy = settings.default_policy(
        strategy=CoinSelectionStrategy.LARGEST_FIRST, max_inputs=None, fee_rate_per_byte=Decimal(1)
    )

    assert policy.strategy == CoinSelectionStrategy.LARGEST_FIRST
    assert policy.max_inputs == 20
    assert policy.fee_rate_per_byte == Decimal(1)


def test_privacy_minimum_below_two_fails() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, privacy_min_inputs=1)


def test_unknown_network_fails() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, network="dogecoin")


def test_policy_validation() -> None:
    settings = Settings(_env_file=None)

    with pytest.raises(ValidationError):
        settings.default_policy(max_inputs=0)
