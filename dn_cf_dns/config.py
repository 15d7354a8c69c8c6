import os
import tomllib
from pathlib import Path
from typing import List

import structlog
from pydantic import BaseModel, Field, SecretStr, ValidationError

from .errors import ConfigError
from .models import Policy

log = structlog.get_logger()

ENV_CF_API_TOKEN = "CF_API_TOKEN"
ENV_DN_API_TOKEN = "DN_API_TOKEN"

PLACEHOLDER_TOKENS = {"YOUR_CLOUDFLARE_API_TOKEN", "YOUR_DEFINED_API_TOKEN"}


class CloudflareConfig(BaseModel):
    api_token: SecretStr = SecretStr("")
    zone_name: str = ""
    zone_id: str = ""


class DefinedConfig(BaseModel):
    api_token: SecretStr = SecretStr("")


class AppConfig(BaseModel):
    required_tags: List[str] = Field(default_factory=list)
    required_suffix: str = ""
    trim_suffix: bool = False
    append_suffix: str = ""
    prune_records: bool = False

    cloudflare: CloudflareConfig = Field(default_factory=CloudflareConfig)
    defined: DefinedConfig = Field(default_factory=DefinedConfig)

    def build_policy(self, zone_name: str) -> Policy:
        """Returns the run's policy, defaulting the managed suffix to the zone name."""
        return Policy(
            required_tags=frozenset(self.required_tags),
            required_suffix=self.required_suffix,
            trim_suffix=self.trim_suffix,
            append_suffix=self.append_suffix or zone_name,
            prune=self.prune_records,
        )


def _read_config_file(path: Path) -> dict:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"config file {path} not found") from e
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e


def _apply_env_overrides(config: AppConfig) -> None:
    cf_token = os.getenv(ENV_CF_API_TOKEN)
    if cf_token:
        config.cloudflare.api_token = SecretStr(cf_token)
    dn_token = os.getenv(ENV_DN_API_TOKEN)
    if dn_token:
        config.defined.api_token = SecretStr(dn_token)


def _validate(config: AppConfig) -> None:
    missing = []
    if not config.cloudflare.api_token.get_secret_value():
        missing.append(f"Cloudflare API token (cloudflare.api_token or {ENV_CF_API_TOKEN})")
    if not config.defined.api_token.get_secret_value():
        missing.append(f"Defined Networking API token (defined.api_token or {ENV_DN_API_TOKEN})")
    if missing:
        raise ConfigError(f"missing credentials: {', '.join(missing)}")

    for token in (config.cloudflare.api_token, config.defined.api_token):
        if token.get_secret_value().upper() in PLACEHOLDER_TOKENS:
            raise ConfigError("placeholder value detected for an API token")

    if not config.cloudflare.zone_name and not config.cloudflare.zone_id:
        raise ConfigError("one of cloudflare.zone_name or cloudflare.zone_id must be set")

    if config.append_suffix.startswith("."):
        log.warning(
            "append_suffix starts with a dot; record names will contain an empty label",
            append_suffix=config.append_suffix,
        )


def load_config(path) -> AppConfig:
    """
    Loads the application configuration.

    Values come from the TOML file at ``path``; non-empty CF_API_TOKEN and
    DN_API_TOKEN environment variables override the tokens it contains.

    Raises:
        ConfigError: If the file is missing or malformed, or required
            settings are absent after the overrides are applied.
    """
    path = Path(path)
    data = _read_config_file(path)
    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config file {path}: {e}") from e

    _apply_env_overrides(config)
    _validate(config)

    log.info("Successfully loaded configuration.", path=str(path))
    return config
