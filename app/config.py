"""Application configuration from environment."""
from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

# Load .env from project root (parent of app/) so env vars are available everywhere
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)


class Settings(BaseSettings):
    app_name: str = "DRSI Law DV Lottery Intake"
    app_env: str = "development"
    debug: bool = True
    app_url: str = "http://localhost:3000"

    # "file" (JSON arrays under data_dir) or "redis" (redis_url)
    storage_backend: str = "file"
    data_dir: str = ".db"
    redis_url: str = "redis://localhost:6379/0"

    @field_validator("storage_backend")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        v = (v or "file").strip().lower()
        if v not in ("file", "redis"):
            raise ValueError("STORAGE_BACKEND must be 'file' or 'redis'")
        return v

    submission_token_max_age_minutes: int = 60
    signature_ttl_minutes: int = 60
    sweep_on_mint: bool = True
    sweep_cron_enabled: bool = True
    sweep_interval_minutes: int = 60

    stripe_secret_key: str = ""
    stripe_publishable_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_currency: str = "usd"
    product_name: str = "DRSI Law - Immigration Lottery Registration"

    jwt_secret_key: str = "jwt-secret-change-me"
    jwt_algorithm: str = "HS256"
    registration_link_expire_days: int = 30

    @field_validator("jwt_secret_key", "stripe_secret_key", "stripe_webhook_secret")
    @classmethod
    def strip_secret(cls, v: str) -> str:
        return (v or "").strip()

    google_oauth_client_id: str = ""
    google_oauth_client_secret: str = ""
    google_oauth_redirect_uri: str = "http://localhost:8000/api/auth/google/callback"
    google_oauth_refresh_token: str = ""
    google_drive_folder_id: str = ""

    mailgun_api_key: str = ""
    mailgun_domain: str = ""
    mailgun_base_url: str = "https://api.mailgun.net"
    mailgun_from_email: str = "noreply@drsi-law.com"
    mailgun_from_name: str = "DRSI Law"

    @field_validator("mailgun_api_key", "mailgun_domain", "mailgun_base_url", "mailgun_from_email", mode="before")
    @classmethod
    def strip_mailgun(cls, v: str) -> str:
        return (v or "").strip()

    sendgrid_api_key: str = ""
    sendgrid_from_email: str = "noreply@drsi-law.com"
    sendgrid_from_name: str = "DRSI Law"

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    from_email: str = ""
    from_name: str = "DRSI Law"

    admin_notification_email: str = ""
    admin_api_key: str = ""

    monday_api_token: str = ""
    monday_board_id: str = ""
    monday_api_url: str = "https://api.monday.com/v2"

    class Config:
        env_file = str(_env_path)
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
