import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str
    log_path: str
    draw_max_attempts: int
    draw_require_ready: bool


def load_settings() -> Settings:
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL", "INFO")
    log_path = os.getenv("LOG_PATH", "logs/giftdraw.log")
    raw_max_attempts = os.getenv("DRAW_MAX_ATTEMPTS", "1000")
    draw_require_ready = os.getenv("DRAW_REQUIRE_READY", "false").strip().lower() in _TRUTHY

    if not database_url:
        raise ValueError("DATABASE_URL is required. Set it in the environment or .env file.")
    try:
        draw_max_attempts = int(raw_max_attempts)
    except ValueError as exc:
        raise ValueError("DRAW_MAX_ATTEMPTS must be an integer.") from exc
    if draw_max_attempts <= 0:
        raise ValueError("DRAW_MAX_ATTEMPTS must be positive.")

    return Settings(
        database_url=database_url,
        log_level=log_level,
        log_path=log_path,
        draw_max_attempts=draw_max_attempts,
        draw_require_ready=draw_require_ready,
    )
