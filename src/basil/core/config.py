# src/basil/core/config.py
"""
APPLICATION SETTINGS FROM ENVIRONMENT VARIABLES
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

ENV_PREFIX = "BASIL_"

# Deployed API Gateway stages used when no URL is configured (India only)
FALLBACK_STACK_URLS: Dict[str, str] = {
    "shopkeeper-core": "https://qzzjg3i8me.execute-api.ap-south-1.amazonaws.com/dev",
    "admin": "https://h7at6cg7gg.execute-api.ap-south-1.amazonaws.com/dev",
    "shopkeeper-inventory-billing": "https://f8l11138vd.execute-api.ap-south-1.amazonaws.com/dev",
    "shopkeeper-analytics": "https://znbn5ri9f1.execute-api.ap-south-1.amazonaws.com/dev",
    "shopkeeper": "https://qzzjg3i8me.execute-api.ap-south-1.amazonaws.com/dev",
    "jobcard": "https://pwmr9ifkda.execute-api.ap-south-1.amazonaws.com/dev",
    "billing": "https://ti0zq6agtk.execute-api.ap-south-1.amazonaws.com/dev",
}

# Environment variable suffix for each stack
STACK_ENV_VARS: Dict[str, str] = {
    "shopkeeper-core": "SHOPKEEPER_CORE_API_URL",
    "admin": "ADMIN_API_URL",
    "shopkeeper-inventory-billing": "SHOPKEEPER_INVENTORY_BILLING_API_URL",
    "shopkeeper-analytics": "SHOPKEEPER_ANALYTICS_API_URL",
    "shopkeeper": "SHOPKEEPER_API_URL",
    "jobcard": "JOBCARD_API_URL",
    "billing": "BILLING_API_URL",
}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(f"{ENV_PREFIX}{name}")
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_float(name: str, default: float) -> float:
    try:
        return float(_env(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except (TypeError, ValueError):
        return default


def _default_log_dir() -> Path:
    if os.name == "nt":
        appdata = os.getenv("APPDATA") or os.path.expanduser("~\\AppData\\Roaming")
        return Path(appdata) / "Basil" / "logs"
    return Path.home() / ".basil" / "logs"


@dataclass(frozen=True)
class Settings:
    env: str = "production"
    log_dir: Path = field(default_factory=_default_log_dir)
    log_level: str = "INFO"
    region_api_urls: Dict[str, str] = field(default_factory=dict)
    stack_api_urls: Dict[str, str] = field(default_factory=dict)
    request_timeout: float = 30.0
    rate_limit: int = 200

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    def stack_url(self, stack: str) -> Optional[str]:
        """Configured base URL for a stack, or the deployed fallback."""
        return self.stack_api_urls.get(stack) or FALLBACK_STACK_URLS.get(stack)


def load_settings() -> Settings:
    """Read settings from BASIL_* environment variables."""
    legacy = _env("API_URL")
    shopkeeper = _env("SHOPKEEPER_API_URL")

    region_api_urls = {
        "IN": _env("API_URL_INDIA") or shopkeeper or legacy or "http://localhost:8000/api/v1",
        "NL": _env("API_URL_NL") or "http://localhost:8001/api/v1",
        # Germany shares the Frankfurt deployment with NL unless configured
        "DE": _env("API_URL_DE") or _env("API_URL_NL") or "http://localhost:8001/api/v1",
    }

    stack_api_urls = {}
    for stack, suffix in STACK_ENV_VARS.items():
        url = _env(suffix)
        if url:
            stack_api_urls[stack] = url

    log_dir = _env("LOG_DIR")

    return Settings(
        env=_env("ENV", "production"),
        log_dir=Path(log_dir) if log_dir else _default_log_dir(),
        log_level=(_env("LOG_LEVEL", "INFO") or "INFO").upper(),
        region_api_urls=region_api_urls,
        stack_api_urls=stack_api_urls,
        request_timeout=max(1.0, _env_float("REQUEST_TIMEOUT", 30.0)),
        rate_limit=max(1, _env_int("RATE_LIMIT", 200)),
    )


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = load_settings()
    return _settings_instance


def refresh_settings() -> Settings:
    """Drop the cached settings and read the environment again."""
    global _settings_instance
    _settings_instance = None
    return get_settings()
