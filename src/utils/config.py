import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    db_path: str = "data/shop.sqlite"
    # how long the "order placed" / "message sent" notice stays up
    success_seconds: float = 5.0
    session_ttl: int = 3600
    seed_demo_data: bool = True
    debug: bool = False


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file, if present)."""
    return Settings(
        db_path=os.getenv("SHOP_DB_PATH") or Settings.db_path,
        success_seconds=_env_float("SHOP_SUCCESS_SECONDS", Settings.success_seconds),
        session_ttl=int(_env_float("SHOP_SESSION_TTL", Settings.session_ttl)),
        seed_demo_data=_env_bool("SHOP_SEED", Settings.seed_demo_data),
        debug=_env_bool("DEBUG", False),
    )
