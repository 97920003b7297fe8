"""Configuration management using Pydantic Settings."""

import os
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


DEFAULT_SDK_URL = "https://cdn.jsdelivr.net/npm/cil-dropin-components@latest/dist/index.min.js"

# Backend wording for "this order was already settled". Not a versioned contract,
# override with DUPLICATE_ORDER_PHRASES='["...", "..."]' when the provider changes it.
DEFAULT_DUPLICATE_ORDER_PHRASES = [
    "already paid",
    "order has been paid",
    "order paid",
    "duplicate order",
    "duplicated order",
    "merchanttransid already exists",
    "order already exists",
    "订单已支付",
    "重复订单",
]


class PaymentEnvironment(str, Enum):
    """Payment provider environment."""
    SANDBOX = "sandbox"
    PRODUCTION = "production"


# Widget runtime's own environment vocabulary
RUNTIME_ENVIRONMENTS = {
    PaymentEnvironment.SANDBOX: "UAT",
    PaymentEnvironment.PRODUCTION: "HKG_prod",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: PaymentEnvironment = Field(default=PaymentEnvironment.SANDBOX, description="Payment provider environment")
    confirm_production: str = Field(default="NO", description="Confirmation for production environment")

    # Payment API
    api_base_url: str = Field(default="http://localhost:8080/api/v1", description="Payment API base URL")
    api_timeout: float = Field(default=30.0, description="Payment API request timeout in seconds")
    return_base_url: str = Field(default="http://localhost:5173", description="Origin used for return and webhook URLs")

    # Widget runtime
    sdk_url: str = Field(default=DEFAULT_SDK_URL, description="Widget runtime script location")
    sdk_global_names: List[str] = Field(default_factory=lambda: ["DropInSDK", "DropinSDK"], description="Global names the runtime may register under")
    sdk_settle_interval: float = Field(default=0.5, description="Seconds to wait after script load before the first runtime check")
    sdk_ready_checks: int = Field(default=3, description="Number of runtime checks after script load")
    sdk_ready_backoff: float = Field(default=2.0, description="Multiplier applied to the wait between runtime checks")
    widget_container_selector: str = Field(default="[data-checkout-widget]", description="CSS selector of the widget mount point")
    widget_locale: str = Field(default="en-US", description="Locale passed to the widget runtime")

    # Session recovery
    duplicate_order_phrases: List[str] = Field(default_factory=lambda: list(DEFAULT_DUPLICATE_ORDER_PHRASES), description="Failure phrases meaning the order was already paid")
    max_auto_retries: int = Field(default=1, description="Consecutive automatic duplicate-order retries")
    order_id_prefix: str = Field(default="demo", description="Alphanumeric prefix for order identifiers")

    # Fallback simulator
    simulator_success_rate: float = Field(default=0.8, description="Probability that a simulated payment completes")
    simulator_processing_delay: float = Field(default=2.0, description="Simulated processing time in seconds")

    # Browser Configuration
    headless: bool = Field(default=True, description="Run browser in headless mode")
    browser_launch_timeout: int = Field(default=60000, description="Browser launch timeout in milliseconds")
    browser_timeout: int = Field(default=30000, description="Browser timeout in milliseconds")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=True, description="Use JSON logging format")
    log_file: Optional[str] = Field(default="logs/checkout.log", description="Optional log file path")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment."""
        if isinstance(v, str):
            v = v.lower()
            # Original backend accepted UAT as an alias for sandbox
            if v == "uat":
                return PaymentEnvironment.SANDBOX.value
        return v

    @field_validator("confirm_production", mode="before")
    @classmethod
    def validate_confirm_production(cls, v):
        """Validate production confirmation."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("duplicate_order_phrases")
    @classmethod
    def validate_duplicate_order_phrases(cls, v: List[str]) -> List[str]:
        """Strip phrases and drop empty entries."""
        return [phrase.strip() for phrase in v if phrase and phrase.strip()]

    @field_validator("simulator_success_rate")
    @classmethod
    def validate_simulator_success_rate(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("simulator_success_rate must be between 0 and 1")
        return v

    @field_validator("order_id_prefix")
    @classmethod
    def validate_order_id_prefix(cls, v: str) -> str:
        if not v.isalnum():
            raise ValueError("order_id_prefix must be alphanumeric")
        return v

    def validate_production_environment(self):
        """Validate that the production environment has proper confirmation."""
        if self.environment == PaymentEnvironment.PRODUCTION and self.confirm_production != "YES":
            raise ConfigurationError(
                "Production environment requires CONFIRM_PRODUCTION=YES. "
                "Payments made there are real."
            )

    @property
    def runtime_environment(self) -> str:
        """Environment name in the widget runtime's vocabulary."""
        return RUNTIME_ENVIRONMENTS[self.environment]

    def is_cloud_environment(self) -> bool:
        """Check if running in cloud environment."""
        return os.getenv("K_SERVICE") is not None  # Cloud Run sets this

    def __repr__(self):
        """Redact sensitive fields in repr."""
        safe_dict = {}
        for key, value in self.model_dump().items():
            if any(sensitive in key.lower() for sensitive in ["password", "secret", "key", "token"]):
                safe_dict[key] = "***REDACTED***"
            else:
                safe_dict[key] = value
        return f"Settings({safe_dict})"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.validate_production_environment()
    return _settings


def reload_settings() -> Settings:
    """Reload settings (useful for testing)."""
    global _settings
    _settings = None
    return get_settings()
