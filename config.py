import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".wordpointe"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

def _env_bool(name: str, default: Any) -> bool:
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")

def load_config() -> Dict[str, Any]:
    """Load config from ~/.wordpointe/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # .env may carry BIBLE_API_KEY and friends
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    session_cfg = config.get("session", {})
    config["session"] = {
        "days": int(os.getenv("WORDPOINTE_SESSION_DAYS", session_cfg.get("days", 7))),
        "cookie_secure": _env_bool("WORDPOINTE_COOKIE_SECURE", session_cfg.get("cookie_secure", False)),
    }
    bible_cfg = config.get("bible", {})
    config["bible"] = {
        "api_key": os.getenv("BIBLE_API_KEY", bible_cfg.get("api_key", "")),
        "api_url": os.getenv(
            "API_BIBLE_URL",
            bible_cfg.get("api_url", "https://api.scripture.api.bible/v1"),
        ),
        "fallback_url": os.getenv(
            "BIBLE_FALLBACK_URL",
            bible_cfg.get("fallback_url", "https://bible-api.com"),
        ),
        "timeout": float(os.getenv("BIBLE_API_TIMEOUT", bible_cfg.get("timeout", 10))),
        "cache_days": int(os.getenv("BIBLE_CACHE_DAYS", bible_cfg.get("cache_days", 7))),
        "auto_create_version": bible_cfg.get("auto_create_version", "NIV"),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("WORDPOINTE_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }
    return config

def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('bible', 'api_key')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
