"""Provides the settings object for the application.

Sources, highest priority first:
1. Environment variables
2. .env file (read with python-dotenv, never written into os.environ)
3. YAML configuration file (~/.auracli/config.yaml, nested keys)
4. Defaults

Nothing is loaded at import time: the entry point calls ``load_settings`` once
and passes the result to whoever needs it.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from auracli.domain.models.errors import ConfigurationError
from auracli.infrastructure.ai.gemini_client import (
    DEFAULT_ANALYSIS_MODEL, DEFAULT_BASE_URL, DEFAULT_MORPH_MODEL,
)
from auracli.infrastructure.identity.session import DEFAULT_PROVIDER_KEY
from auracli.infrastructure.resilience.api_retry import (
    DEFAULT_INITIAL_BACKOFF_MS, DEFAULT_MAX_RETRIES,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".auracli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
DEFAULT_APP_ID = "aura-medspa-enterprise-v1"
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


@dataclass(frozen=True)
class Settings:
    """Resolved application settings."""
    gemini_api_key: Optional[str] = None
    ai_base_url: str = DEFAULT_BASE_URL
    analysis_model: str = DEFAULT_ANALYSIS_MODEL
    morph_model: str = DEFAULT_MORPH_MODEL
    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff_ms: float = DEFAULT_INITIAL_BACKOFF_MS
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    app_id: str = DEFAULT_APP_ID
    provider_key: str = DEFAULT_PROVIDER_KEY
    store_config: Optional[str] = None  # raw JSON, parsed by bootstrap
    auth_token: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None
    log_format: str = DEFAULT_LOG_FORMAT
    sources: Dict[str, str] = field(default_factory=dict, compare=False)


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def _load_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.exists():
        logger.debug(f"YAML config file not found: {config_file}")
        return {}
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load or parse YAML config {config_file}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"YAML config file {config_file} did not contain a mapping.")
    logger.info(f"Loaded configuration from YAML: {config_file}")
    return data


def _yaml_get(data: Mapping[str, Any], dotted_key: str) -> Any:
    current: Any = data
    for part in dotted_key.split('.'):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current


class _Resolver:
    """Looks keys up across env, .env and YAML in priority order."""

    def __init__(self, environ: Mapping[str, str], dotenv: Mapping[str, Optional[str]], yaml_data: Mapping[str, Any]):
        self.environ = environ
        self.dotenv = dotenv
        self.yaml_data = yaml_data
        self.sources: Dict[str, str] = {}

    def get(self, env_key: str, yaml_key: Optional[str], default: Any = None) -> Any:
        if self.environ.get(env_key) not in (None, ""):
            self.sources[env_key] = "env"
            return self.environ[env_key]
        if self.dotenv.get(env_key) not in (None, ""):
            self.sources[env_key] = "dotenv"
            return self.dotenv[env_key]
        if yaml_key:
            value = _yaml_get(self.yaml_data, yaml_key)
            if value not in (None, ""):
                self.sources[env_key] = "yaml"
                return value
        return default

    def get_int(self, env_key: str, yaml_key: str, default: int) -> int:
        value = self.get(env_key, yaml_key, default)
        try:
            result = int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{env_key} must be an integer, got {value!r}") from e
        if result < 0:
            raise ConfigurationError(f"{env_key} must not be negative, got {result}")
        return result

    def get_float(self, env_key: str, yaml_key: str, default: float, positive: bool = False) -> float:
        value = self.get(env_key, yaml_key, default)
        try:
            result = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{env_key} must be a number, got {value!r}") from e
        if positive and result <= 0:
            raise ConfigurationError(f"{env_key} must be positive, got {result}")
        if result < 0:
            raise ConfigurationError(f"{env_key} must not be negative, got {result}")
        return result


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def load_settings(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Builds a Settings object from all configuration sources.

    Args:
        config_file: YAML file (optional on disk).
        env_file: Explicit .env path. When omitted, the nearest .env upwards
            from the working directory is used, if any.
        environ: Environment mapping, defaults to ``os.environ``.

    Raises:
        ConfigurationError: If a file is malformed, a value has the wrong type,
            or a value is out of range (blank provider key, non-positive timeout).
    """
    environ = os.environ if environ is None else environ
    dotenv_path = env_file or find_dotenv_path()
    dotenv: Mapping[str, Optional[str]] = {}
    if dotenv_path and Path(dotenv_path).is_file():
        dotenv = dotenv_values(dotenv_path)
        logger.info(f"Loaded environment variables from: {dotenv_path}")

    resolver = _Resolver(environ, dotenv, _load_yaml(Path(config_file)))

    store_config = resolver.get("AURA_STORE_CONFIG", "store.config")
    if isinstance(store_config, Mapping):
        store_config = json.dumps(dict(store_config))

    settings = Settings(
        gemini_api_key=_optional_str(resolver.get("GEMINI_API_KEY", "ai.api_key")),
        ai_base_url=str(resolver.get("AURA_AI_BASE_URL", "ai.base_url", DEFAULT_BASE_URL)),
        analysis_model=str(resolver.get("AURA_ANALYSIS_MODEL", "ai.analysis_model", DEFAULT_ANALYSIS_MODEL)),
        morph_model=str(resolver.get("AURA_MORPH_MODEL", "ai.morph_model", DEFAULT_MORPH_MODEL)),
        max_retries=resolver.get_int("AURA_MAX_RETRIES", "retry.max_retries", DEFAULT_MAX_RETRIES),
        initial_backoff_ms=resolver.get_float(
            "AURA_INITIAL_BACKOFF_MS", "retry.initial_backoff_ms", DEFAULT_INITIAL_BACKOFF_MS),
        http_timeout=resolver.get_float(
            "AURA_HTTP_TIMEOUT", "http.timeout", DEFAULT_HTTP_TIMEOUT, positive=True),
        app_id=str(resolver.get("AURA_APP_ID", "app.id", DEFAULT_APP_ID)),
        provider_key=str(resolver.get("AURA_PROVIDER_KEY", "app.provider_key", DEFAULT_PROVIDER_KEY)),
        store_config=_optional_str(store_config),
        auth_token=_optional_str(resolver.get("AURA_AUTH_TOKEN", "app.auth_token")),
        log_level=str(resolver.get("AURA_LOG_LEVEL", "logging.level", DEFAULT_LOG_LEVEL)).upper(),
        log_file=_optional_str(resolver.get("AURA_LOG_FILE", "logging.file")),
        log_format=str(resolver.get("AURA_LOG_FORMAT", "logging.format", DEFAULT_LOG_FORMAT)),
        sources=dict(resolver.sources),
    )
    if not settings.provider_key.strip():
        raise ConfigurationError("AURA_PROVIDER_KEY must not be blank.")
    logger.info("Configuration loading process completed.")
    logger.debug(f"Configuration sources: {settings.sources}")
    return settings
