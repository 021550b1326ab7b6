"""
Configuration management and loading.

Handles the optional YAML settings file and environment variables.
Secrets (API keys, identity service settings) come from the
environment only.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from speak_coach.core.quota import Limit
from speak_coach.storage.db import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT_WINDOW_MS = 60000
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 20
DEFAULT_DAILY_QUOTA = 200
DEFAULT_GEMINI_MODELS = ("gemini-2.5-flash", "gemini-2.0-flash", "gemini-1.5-flash")
DEFAULT_REALTIME_MODEL = "gpt-realtime"

CONFIG_PATH_ENV = "SPEAK_COACH_CONFIG"


@dataclass(frozen=True)
class RateLimitConfig:
    """Per-client request window."""
    window_ms: Limit = Limit(DEFAULT_RATE_LIMIT_WINDOW_MS)
    max_requests: Limit = Limit(DEFAULT_RATE_LIMIT_MAX_REQUESTS)


@dataclass(frozen=True)
class DailyQuotaConfig:
    """Per-user daily ceiling on generated replies."""
    limit: Limit = Limit(DEFAULT_DAILY_QUOTA)


@dataclass(frozen=True)
class GeminiConfig:
    """Text chat provider settings."""
    api_key: Optional[str] = None
    models: Tuple[str, ...] = DEFAULT_GEMINI_MODELS
    temperature: float = 0.8
    timeout_s: float = 30.0

    def __post_init__(self):
        """Validate provider settings."""
        if not self.models:
            raise ValueError("gemini.models must not be empty")
        if not 0 <= self.temperature <= 2:
            raise ValueError("gemini.temperature must be between 0 and 2")
        if self.timeout_s <= 0:
            raise ValueError("gemini.timeout_s must be > 0")


@dataclass(frozen=True)
class RealtimeConfig:
    """Realtime voice session settings."""
    api_key: Optional[str] = None
    model: str = DEFAULT_REALTIME_MODEL
    timeout_s: float = 15.0

    def __post_init__(self):
        """Validate realtime settings."""
        if not self.model:
            raise ValueError("realtime.model must not be empty")
        if self.timeout_s <= 0:
            raise ValueError("realtime.timeout_s must be > 0")


@dataclass(frozen=True)
class SupabaseConfig:
    """Identity service settings."""
    url: Optional[str] = None
    anon_key: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    daily_quota: DailyQuotaConfig = field(default_factory=DailyQuotaConfig)
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    realtime: RealtimeConfig = field(default_factory=RealtimeConfig)
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    db_path: str = DEFAULT_DB_PATH


_ALLOWED_KEYS = {
    "rate_limit": {"window_ms", "max_requests"},
    "daily_quota": {"limit"},
    "gemini": {"models", "temperature", "timeout_s"},
    "realtime": {"model", "timeout_s"},
    "storage": {"db_path"},
}


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load configuration from an optional YAML file and the environment.

    The YAML file is validated strictly. Environment limits override the
    file; a limit that is set but not a positive number disables that
    limit instead of rejecting startup.

    Args:
        path: YAML file path (defaults to $SPEAK_COACH_CONFIG, if set)
        env: Environment mapping (defaults to os.environ)

    Returns:
        Validated AppConfig

    Raises:
        FileNotFoundError: If the config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the file's configuration is invalid
    """
    env = os.environ if env is None else env
    path = path or env.get(CONFIG_PATH_ENV)
    raw = _read_yaml(path) if path else {}

    rate = raw.get("rate_limit", {})
    quota = raw.get("daily_quota", {})
    gemini = raw.get("gemini", {})
    realtime = raw.get("realtime", {})
    storage = raw.get("storage", {})

    window_ms = _positive_int(rate, "window_ms", "rate_limit", DEFAULT_RATE_LIMIT_WINDOW_MS)
    max_requests = _positive_int(rate, "max_requests", "rate_limit", DEFAULT_RATE_LIMIT_MAX_REQUESTS)
    daily_limit = _positive_int(quota, "limit", "daily_quota", DEFAULT_DAILY_QUOTA)

    models = gemini.get("models", list(DEFAULT_GEMINI_MODELS))
    if not isinstance(models, list) or not all(isinstance(m, str) and m for m in models):
        raise ValueError("'gemini.models' must be a list of model names")

    return AppConfig(
        rate_limit=RateLimitConfig(
            window_ms=_env_limit(env, "GEMINI_RATE_LIMIT_WINDOW_MS", window_ms),
            max_requests=_env_limit(env, "GEMINI_RATE_LIMIT_MAX", max_requests),
        ),
        daily_quota=DailyQuotaConfig(
            limit=_env_limit(env, "DAILY_QUOTA_LIMIT", daily_limit),
        ),
        gemini=GeminiConfig(
            api_key=env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY") or None,
            models=tuple(models),
            temperature=float(gemini.get("temperature", 0.8)),
            timeout_s=float(gemini.get("timeout_s", 30.0)),
        ),
        realtime=RealtimeConfig(
            api_key=env.get("OPENAI_API_KEY") or None,
            model=str(realtime.get("model", DEFAULT_REALTIME_MODEL)),
            timeout_s=float(realtime.get("timeout_s", 15.0)),
        ),
        supabase=SupabaseConfig(
            url=env.get("SUPABASE_URL") or None,
            anon_key=env.get("SUPABASE_ANON_KEY") or None,
        ),
        db_path=env.get("SPEAK_COACH_DB") or str(storage.get("db_path", DEFAULT_DB_PATH)),
    )


def _read_yaml(path: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration root must be a dictionary")

    unknown_keys = set(raw_config.keys()) - set(_ALLOWED_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    for section, allowed in _ALLOWED_KEYS.items():
        data = raw_config.get(section, {})
        if not isinstance(data, dict):
            raise ValueError(f"'{section}' must be a dictionary")
        unknown = set(data.keys()) - allowed
        if unknown:
            raise ValueError(f"Unknown keys in {section}: {unknown}")

    return raw_config


def _positive_int(data: Dict[str, Any], key: str, section: str, default: int) -> int:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"'{key}' in {section} must be a positive integer")
    return value


def _env_limit(env: Mapping[str, str], name: str, default: int) -> Limit:
    raw = env.get(name)
    limit = Limit.parse(raw, default)
    if limit.is_unlimited:
        logger.warning("%s=%r is not a positive number; limit disabled", name, raw)
    return limit
