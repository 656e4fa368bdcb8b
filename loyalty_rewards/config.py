import os
from dataclasses import dataclass, field

from dotenv import load_dotenv


load_dotenv(encoding="utf-8")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> tuple[str, ...]:
    raw = os.getenv(name) or default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///./loyalty_rewards.db"
    db_create_all: bool = True
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = field(default_factory=lambda: ("http://localhost:3000",))

    rate_limit_enabled: bool = True
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60

    default_cashback_rate: float = 0.05
    points_per_currency_unit: int = 100
    tier_validity_days: int = 365
    points_validity_days: int = 365
    expiring_soon_days: int = 30

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL") or cls.database_url,
            db_create_all=_env_bool("DB_CREATE_ALL", True),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            cors_origins=_env_list("CORS_ORIGINS", "http://localhost:3000"),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", True),
            rate_limit_requests=int(os.getenv("RATE_LIMIT_REQUESTS") or "10"),
            rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS") or "60"),
            default_cashback_rate=float(os.getenv("DEFAULT_CASHBACK_RATE") or "0.05"),
            points_per_currency_unit=int(os.getenv("POINTS_PER_CURRENCY_UNIT") or "100"),
            tier_validity_days=int(os.getenv("TIER_VALIDITY_DAYS") or "365"),
            points_validity_days=int(os.getenv("POINTS_VALIDITY_DAYS") or "365"),
            expiring_soon_days=int(os.getenv("EXPIRING_SOON_DAYS") or "30"),
        )
