"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from datetime import datetime, timezone

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── SFTP file channel ─────────────────────
    SFTP_HOST: str = ""
    SFTP_PORT: int = 22
    SFTP_USERNAME: str = ""
    SFTP_PASSWORD: str = ""
    SFTP_DIRECTORY: str = "/"
    SFTP_CONNECT_TIMEOUT_S: float = 30.0

    # ── Local directory channel (debug) ───────
    USE_LOCAL_DIRECTORY: bool = False
    LOCAL_DIRECTORY_PATH: str = "./inbox"

    # ── Commerce API ──────────────────────────
    COMMERCE_API_BASE_URL: str = "https://api.commerce-provider.com/v1"
    COMMERCE_API_KEY: str = ""
    COMMERCE_API_TIMEOUT_S: float = 30.0
    ORDER_SOURCE_ID: str = "0e95de59-6f4c-4f69-9ec1-0d82e3b5f759"
    ORDER_CURRENCY: str = "GBP"

    # ── File lifecycle policy ─────────────────
    FILE_DELETION: bool = False
    SKIP_PROCESSED_FILES: bool = True
    # Customer go-live: everything older was entered manually
    CUTOFF_DATETIME: datetime = datetime(2025, 6, 19, 17, 0, tzinfo=timezone.utc)
    MIN_FILE_SIZE_BYTES: int = 10

    # ── Order reconciliation ──────────────────
    SKU_BATCH_SIZE: int = 200
    CUSTOMER_SETTLE_DELAY_S: float = 5.0

    # ── Dispatch ──────────────────────────────
    DISPATCH_MODE: str = "inline"        # "inline" | "celery"
    DISPATCH_TIMEOUT_S: float = 30.0

    # ── Scheduler ─────────────────────────────
    SYNC_INTERVAL_MINUTES: float = 10.0
    AUTO_SYNC_ON_STARTUP: bool = True

    # ── Key-value store (ledger) ──────────────
    LEDGER_DATABASE_URL: str = "sqlite:///./ordersync.db"

    # ── Redis / Celery ────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/1"

    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}


settings = Settings()
