from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Deposit Hold API"
    LOG_LEVEL: str = "INFO"
    # Comma-separated origins for CORS. If empty, any origin is allowed (companion app + booking widget).
    CORS_ORIGINS: str = ""

    SERVER_URL: str = "http://localhost:4242"  # public base URL used in emailed payment links
    # Bearer token for admin endpoints (cancel/capture/sweep/manual verify). Empty = open.
    ADMIN_API_TOKEN: str = ""

    # Stripe (manual-capture PaymentIntents)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    DEPOSIT_CURRENCY: str = "gbp"
    DEPOSIT_DEFAULT_AMOUNT: int = 100  # minor units

    # Email
    SENDGRID_API_KEY: str = ""
    SENDGRID_FROM_EMAIL: str = ""
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "deposits@rental.local"
    ADMIN_EMAIL: str = "deposits@rental.local"

    # Planyo REST API
    PLANYO_BASE_URL: str = "https://www.planyo.com/rest/"
    PLANYO_API_KEY: str = ""
    PLANYO_HASH_KEY: str = ""
    PLANYO_SITE_ID: str = ""
    PLANYO_TIMEOUT: int = 20
    PLANYO_VERIFY_CALLBACK: bool = True
    PLANYO_CONFIRMED_STATUS: int = 7  # reserved + email verified + confirmed

    # Idempotency / form status persistence
    DATA_DIR: str = "./data"
    STORAGE_BACKEND: str = "json"  # json|sql
    DATABASE_URL: str = "sqlite:///./data/deposit_hold.db"
    SENT_RETENTION_DAYS: int = 3
    PROCESSED_RETENTION_DAYS: int = 30

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def sqlalchemy_database_url(cls, v: str) -> str:
        """Bare postgres:// or postgresql:// URLs get the psycopg2 driver; others pass through."""
        scheme, sep, rest = (v or "").partition("://")
        if sep and scheme in ("postgres", "postgresql"):
            return f"postgresql+psycopg2://{rest}"
        return v

    @field_validator("STORAGE_BACKEND", mode="after")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        v = (v or "json").strip().lower()
        if v not in ("json", "sql"):
            raise ValueError("STORAGE_BACKEND must be 'json' or 'sql'")
        return v

    # Scheduler (Celery beat)
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_SSL_CERT_REQS: str = "CERT_REQUIRED"  # applied to rediss:// URLs that do not set it
    SCHEDULER_TIMEZONE: str = "Europe/London"
    SCHEDULER_MODE: str = "intraday"  # intraday (every 30 min, 08:00-20:59) | daily
    SCHEDULER_DAILY_HOUR: int = 9


settings = Settings()
