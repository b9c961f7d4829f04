# chatbot/config.py
"""
Environment-driven settings.

Values are read from the process environment (a local `.env` is loaded
first). Access them through the module-level `settings` object:

    from .config import settings
    settings.PAYSTACK_SECRET_KEY
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

load_dotenv()


def _env(key: str, default: str = "") -> str:
    return os.getenv(key, default).strip()


def _env_float(key: str, default: float) -> float:
    raw = _env(key)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", key, raw, default)
        return default


class Settings(BaseModel):
    APP_ENV: str = Field(default_factory=lambda: _env("APP_ENV", "development").lower())
    PAYSTACK_SECRET_KEY: str = Field(default_factory=lambda: _env("PAYSTACK_SECRET_KEY"))
    PAYSTACK_BASE_URL: str = Field(
        default_factory=lambda: _env("PAYSTACK_BASE_URL", "https://api.paystack.co").rstrip("/")
    )
    BASE_URL: str = Field(default_factory=lambda: _env("BASE_URL", "http://localhost:3001").rstrip("/"))
    CURRENCY: str = Field(default_factory=lambda: _env("CURRENCY", "NGN").upper())
    AUDIT_WEBHOOK_URL: Optional[str] = Field(default_factory=lambda: _env("AUDIT_WEBHOOK_URL") or None)
    LOG_LEVEL: str = Field(default_factory=lambda: _env("LOG_LEVEL", "INFO").upper())
    GATEWAY_TIMEOUT: float = Field(default_factory=lambda: _env_float("GATEWAY_TIMEOUT", 20.0))
    MOCK_GATEWAY_DELAY: float = Field(default_factory=lambda: _env_float("MOCK_GATEWAY_DELAY", 0.0))
    PORT: int = Field(default_factory=lambda: int(_env_float("PORT", 3001)))

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def use_mock_gateway(self) -> bool:
        # Anything but production talks to the in-process mock.
        return not self.is_production

    @property
    def callback_url(self) -> str:
        return f"{self.BASE_URL}/api/payment/callback"

    def require_gateway_credentials(self) -> None:
        """
        Fail fast when the real gateway is selected but no secret key is set.
        """
        if self.is_production and not self.PAYSTACK_SECRET_KEY:
            raise ConfigurationError(
                "Paystack secret key is not configured. "
                "Please set PAYSTACK_SECRET_KEY in your environment or .env file."
            )


settings = Settings()
