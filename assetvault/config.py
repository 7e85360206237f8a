import os
import re
from functools import lru_cache
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so env vars are available for YAML interpolation
load_dotenv(Path.cwd() / ".env")

# Pattern to match $VAR_NAME environment variable references
ENV_VAR_PATTERN = re.compile(r"\$([A-Z_][A-Z0-9_]*)")

_config_path_override: Path | None = None


def interpolate_env_vars(value):
    """Recursively replace $VAR_NAME with os.environ values."""
    if isinstance(value, str):

        def replace(match):
            var = match.group(1)
            val = os.environ.get(var)
            if val is None:
                raise ValueError(f"Environment variable ${var} not set")
            return val

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: interpolate_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [interpolate_env_vars(item) for item in value]
    return value


def set_config_path(path: Path | None) -> None:
    """Force a specific config file (used by the CLI ``-f`` option)."""
    global _config_path_override
    _config_path_override = Path(path) if path is not None else None


def get_config_path() -> Path:
    """Resolve the config file: override, then ASSETVAULT_ENV, then app.yaml."""
    if _config_path_override is not None:
        return _config_path_override
    env = os.environ.get("ASSETVAULT_ENV")
    if env and env != "production":
        return Path.cwd() / f"app.{env}.yaml"
    return Path.cwd() / "app.yaml"


def load_app_config() -> dict:
    """Load and parse the YAML config with environment variable interpolation."""
    config_path = get_config_path()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found at {config_path}")

    with open(config_path, "r") as f:
        config = yaml.safe_load(f) or {}

    return interpolate_env_vars(config)


class LocalStorageConfig(BaseModel):
    """Filesystem backend configuration."""

    path: str = "./data/assets"


class GitHubStorageConfig(BaseModel):
    """Revision-hosted (GitHub contents API) backend configuration."""

    owner: str = ""
    repo: str = ""
    token: str = ""
    branch: str = "main"
    api_url: str = "https://api.github.com"
    path_prefix: str = ""
    timeout: float = 10.0


class StorageConfig(BaseModel):
    """Content backend selection.

    ``backend`` is ``memory``, ``local``, ``github`` or a ``module:ClassName``
    spec whose class is constructed with this config.
    """

    backend: str = "memory"
    local: LocalStorageConfig = LocalStorageConfig()
    github: GitHubStorageConfig = GitHubStorageConfig()


class MetadataConfig(BaseModel):
    """Metadata registry selection."""

    backend: str = "memory"
    url: str = "sqlite+aiosqlite:///./assetvault.db"
    echo: bool = False


class AssetStoreConfig(BaseModel):
    """Versioning, classification and retry policy of the asset store."""

    content_prefix: str = "assets"
    default_classification: str = "private"
    classifications: list[str] = ["private", "internal", "public"]
    conflict_retries: int = 2
    retry_backoff: float = 0.05
    default_page_size: int = 50
    max_page_size: int = 500


class PrincipalTokenConfig(BaseModel):
    """A bearer token and the principal it authenticates as."""

    token: str
    principal: str
    roles: list[str] = Field(default_factory=list)


class AuthConfig(BaseModel):
    """Front-door authentication configuration."""

    tokens: list[PrincipalTokenConfig] = []


class LogfireConfig(BaseModel):
    """Pydantic Logfire observability configuration."""

    enabled: bool = False
    service_name: str = "assetvault"
    environment: str | None = None
    sample_rate: float = 1.0
    console: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ASSETVAULT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    storage: StorageConfig = StorageConfig()
    metadata: MetadataConfig = MetadataConfig()
    store: AssetStoreConfig = AssetStoreConfig()
    auth: AuthConfig = AuthConfig()
    logfire: LogfireConfig = LogfireConfig()


_SECTIONS = {
    "storage": StorageConfig,
    "metadata": MetadataConfig,
    "store": AssetStoreConfig,
    "auth": AuthConfig,
    "logfire": LogfireConfig,
}


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment, .env and the YAML config file."""
    base_settings = Settings()

    try:
        app_config = load_app_config()
    except FileNotFoundError:
        return base_settings

    updates = {}

    for key, model in _SECTIONS.items():
        if key in app_config:
            updates[key] = model(**app_config[key])

    if "debug" in app_config:
        updates["debug"] = bool(app_config["debug"])

    if updates:
        return base_settings.model_copy(update=updates)

    return base_settings


def clear_settings_cache() -> None:
    """Forget cached settings so the next call re-reads config."""
    get_settings.cache_clear()
