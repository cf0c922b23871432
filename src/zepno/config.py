"""Zepno — configuration loaded from environment."""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings, loaded from .env or environment variables."""

    # ── Database ──────────────────────────────────────────
    database_url: str = "sqlite+aiosqlite:///./zepno.db"

    # ── SMS-Activate provider ─────────────────────────────
    sms_activate_api_key: str = ""
    sms_activate_base_url: str = "https://api.sms-activate.org/stubs/handler_api.php"
    sms_country_code: str = "22"
    provider_timeout_seconds: float = 15.0

    # ── Catalog / polling ─────────────────────────────────
    catalog_cache_seconds: int = 300
    catalog_retry_seconds: int = 30
    poll_interval_seconds: float = 10.0

    # ── Razorpay ──────────────────────────────────────────
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_webhook_secret: str = ""
    razorpay_base_url: str = "https://api.razorpay.com/v1"
    topup_min_amount: Decimal = Decimal("10")

    # ── Email (top-up receipts) ───────────────────────────
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    email_from: str = "wallet@zepno.local"

    # ── App ───────────────────────────────────────────────
    app_name: str = "Zepno"
    debug: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_required(self) -> None:
        """Raise ``ValueError`` if any credential needed at runtime is blank."""
        required = {
            "SMS_ACTIVATE_API_KEY": self.sms_activate_api_key,
            "RAZORPAY_WEBHOOK_SECRET": self.razorpay_webhook_secret,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")


# Singleton settings instance
settings = Settings()
