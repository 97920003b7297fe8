"""Tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from checkout_demo.core import config
from checkout_demo.core.config import DEFAULT_DUPLICATE_ORDER_PHRASES, PaymentEnvironment, Settings
from checkout_demo.core.errors import ConfigurationError

from conftest import make_settings


def test_defaults():
    """Test defaults describe a sandbox demo with the stock runtime."""
    settings = Settings(_env_file=None)

    assert settings.environment == PaymentEnvironment.SANDBOX
    assert settings.runtime_environment == "UAT"
    assert settings.sdk_global_names == ["DropInSDK", "DropinSDK"]
    assert settings.duplicate_order_phrases == DEFAULT_DUPLICATE_ORDER_PHRASES
    assert settings.max_auto_retries == 1


def test_uat_alias_maps_to_sandbox():
    """Test the legacy UAT name selects the sandbox."""
    assert make_settings(environment="UAT").environment == PaymentEnvironment.SANDBOX


def test_production_requires_confirmation():
    """Test production without confirmation is refused."""
    settings = make_settings(environment="production")

    with pytest.raises(ConfigurationError):
        settings.validate_production_environment()


def test_production_with_confirmation():
    """Test a confirmed production environment validates."""
    settings = make_settings(environment="production", confirm_production="yes")

    settings.validate_production_environment()
    assert settings.runtime_environment == "HKG_prod"


def test_duplicate_order_phrases_from_environment(monkeypatch):
    """Test phrases can be replaced through a JSON list in the environment."""
    monkeypatch.setenv("DUPLICATE_ORDER_PHRASES", '["  already settled ", ""]')

    settings = Settings(_env_file=None)

    assert settings.duplicate_order_phrases == ["already settled"]


@pytest.mark.parametrize("rate", [-0.1, 1.5])
def test_simulator_success_rate_bounds(rate):
    """Test success rates outside [0, 1] are rejected."""
    with pytest.raises(ValidationError):
        make_settings(simulator_success_rate=rate)


def test_order_id_prefix_must_be_alphanumeric():
    """Test a prefix containing the id separator is rejected."""
    with pytest.raises(ValidationError):
        make_settings(order_id_prefix="demo_shop")


def test_repr_redacts_sensitive_fields():
    """Test repr keeps settings readable without leaking secrets."""
    text = repr(make_settings())

    assert text.startswith("Settings(")
    assert "sdk_url" in text


def test_reload_settings_reads_environment(monkeypatch):
    """Test reload_settings builds a fresh instance from the environment."""
    monkeypatch.setenv("ORDER_ID_PREFIX", "shop")
    monkeypatch.setattr(config, "_settings", None)

    assert config.reload_settings().order_id_prefix == "shop"
