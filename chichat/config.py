from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for credentials, endpoints, and runtime limits."""
    gemini_api_key: str
    gemini_model: str
    gemini_max_output_tokens: int
    gemini_temperature: float
    gemini_timeout_seconds: float
    google_maps_api_key: str
    delivery_origin: str
    directions_timeout_seconds: float
    mongo_uri: str
    mongo_db_name: str
    mongo_puppies_collection: str
    mongo_timeout_ms: int
    business_name: str
    prompts_dir: Path
    knowledge_path: Path
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default resource paths.
    Failure Modes: Non-numeric or out-of-range numeric values raise ValueError.
    If Removed: Resolver, store and generation clients cannot be configured.
    Testing Notes: Verify defaults and overrides via monkeypatched environment.
    """
    # Resolve resource paths first, then build Settings from env overrides.
    prompts_dir = _env_path("PROMPTS_DIR", BASE_DIR / "prompts")
    knowledge_path = _env_path("KNOWLEDGE_PATH", BASE_DIR / "knowledge" / "chi_knowledge.md")

    settings = Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
        gemini_max_output_tokens=_env_int("GEMINI_MAX_OUTPUT_TOKENS", 600),
        gemini_temperature=_env_float("GEMINI_TEMPERATURE", 0.4),
        gemini_timeout_seconds=_env_float("GEMINI_TIMEOUT_SECONDS", 30.0),
        google_maps_api_key=os.getenv("GOOGLE_MAPS_API_KEY", ""),
        delivery_origin=os.getenv("DELIVERY_ORIGIN", "Marion, VA"),
        directions_timeout_seconds=_env_float("DIRECTIONS_TIMEOUT_SECONDS", 10.0),
        mongo_uri=os.getenv("MONGO_URI", ""),
        mongo_db_name=os.getenv("MONGO_DB_NAME", "swva_chihuahua"),
        mongo_puppies_collection=os.getenv("MONGO_PUPPIES_COLLECTION", "puppies"),
        mongo_timeout_ms=_env_int("MONGO_TIMEOUT_MS", 5000),
        business_name=os.getenv("BUSINESS_NAME", "Southwest Virginia Chihuahua"),
        prompts_dir=prompts_dir,
        knowledge_path=knowledge_path,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
    _validate_settings(settings)
    return settings


def _validate_settings(settings: Settings) -> None:
    if settings.gemini_max_output_tokens < 1:
        raise ValueError(
            f"GEMINI_MAX_OUTPUT_TOKENS must be >= 1, got {settings.gemini_max_output_tokens}"
        )
    if not 0.0 <= settings.gemini_temperature <= 2.0:
        raise ValueError(f"GEMINI_TEMPERATURE must be between 0.0 and 2.0, got {settings.gemini_temperature}")
    for name, value in (
        ("GEMINI_TIMEOUT_SECONDS", settings.gemini_timeout_seconds),
        ("DIRECTIONS_TIMEOUT_SECONDS", settings.directions_timeout_seconds),
        ("MONGO_TIMEOUT_MS", settings.mongo_timeout_ms),
    ):
        if value <= 0:
            raise ValueError(f"{name} must be > 0, got {value}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid integer for {name}: {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid float for {name}: {raw!r}") from None


def _env_path(name: str, default: Path) -> Path:
    raw: Optional[str] = os.getenv(name)
    if raw:
        return Path(raw)
    return default.resolve()
