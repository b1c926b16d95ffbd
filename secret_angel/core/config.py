import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from sqlalchemy.engine import URL

load_dotenv()


class ConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    bot_token: str
    database_url: str
    admin_telegram_id: int
    log_level: str
    log_path: str
    rate_limit_max_requests: int
    rate_limit_window_seconds: int
    match_max_attempts: int
    webhook_base_url: Optional[str]
    webhook_path: str
    webhook_secret: Optional[str]
    host: str
    port: int

    @property
    def use_webhook(self) -> bool:
        return bool(self.webhook_base_url)

    @property
    def webhook_url(self) -> Optional[str]:
        if not self.webhook_base_url:
            return None
        return self.webhook_base_url.rstrip("/") + self.webhook_path


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc


def _database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    password = os.getenv("DB_PASSWORD")
    if not password:
        raise ConfigurationError(
            "DATABASE_URL is required, or DB_PASSWORD for a local database. "
            "Set it in the environment or .env file."
        )
    url = URL.create(
        "postgresql+psycopg2",
        username=os.getenv("DB_USER", "postgres"),
        password=password,
        host=os.getenv("DB_HOST", "localhost"),
        port=_int_env("DB_PORT", 5432),
        database=os.getenv("DB_NAME", "secret_angel"),
    )
    return url.render_as_string(hide_password=False)


def load_settings() -> Settings:
    bot_token = os.getenv("TELEGRAM_BOT_TOKEN") or os.getenv("BOT_TOKEN")
    if not bot_token:
        raise ConfigurationError(
            "TELEGRAM_BOT_TOKEN is required. Set it in the environment or .env file."
        )

    database_url = _database_url()

    admin_telegram_id = _int_env("ADMIN_TELEGRAM_ID", 0)
    if not admin_telegram_id:
        logger.warning("ADMIN_TELEGRAM_ID is not set. Admin commands will not work.")

    webhook_path = os.getenv("WEBHOOK_PATH", "/webhook")
    if not webhook_path.startswith("/"):
        webhook_path = "/" + webhook_path

    return Settings(
        bot_token=bot_token,
        database_url=database_url,
        admin_telegram_id=admin_telegram_id,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_path=os.getenv("LOG_PATH", "logs/secret_angel.log"),
        rate_limit_max_requests=_int_env("RATE_LIMIT_MAX_REQUESTS", 10),
        rate_limit_window_seconds=_int_env("RATE_LIMIT_WINDOW_SECONDS", 60),
        match_max_attempts=_int_env("MATCH_MAX_ATTEMPTS", 100),
        webhook_base_url=os.getenv("WEBHOOK_BASE_URL") or None,
        webhook_path=webhook_path,
        webhook_secret=os.getenv("WEBHOOK_SECRET") or None,
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_env("PORT", 10000),
    )
