"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("bedrock-proxy")

# Default path to the config file (relative to project root)
DEFAULT_CONFIG_PATH = "configs/config_default.yaml"

# Environment variable to override the config path
CONFIG_PATH = os.getenv("BEDROCK_PROXY_CONFIG") or DEFAULT_CONFIG_PATH

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8081
DEFAULT_REGION = "us-east-1"
MODEL_POLICIES = ("fallback", "reject")

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def resolve_env_path(config_path: Path, env_path: str | None = None) -> Path:
    """Resolve the env file path for a config file."""
    if env_path:
        return resolve_config_path(env_path)
    stem = config_path.stem
    if stem.startswith("config_"):
        suffix = stem[len("config_"):]
        return config_path.with_name(f".env_{suffix}")
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(
    path: str | None = None,
    env_path: str | None = None,
    substitute_env: bool = True,
) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to BEDROCK_PROXY_CONFIG,
              or configs/config_default.yaml in the project root.
        env_path: Optional .env path override for env substitution.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary.
    """
    if path is None:
        path = CONFIG_PATH

    config_path = resolve_config_path(path)

    logger.info(f"Loading configuration from {config_path}")

    if not config_path.exists():
        if path == DEFAULT_CONFIG_PATH:
            # Installed without the source tree: every getter has a default.
            logger.warning(
                f"Default config file not found at {config_path}, using built-in defaults"
            )
            return {}
        logger.error(f"Config file not found: {config_path}")
        raise RuntimeError(f"Config file not found: {config_path}")

    env_values: dict[str, str] = {}
    if substitute_env:
        env_file = resolve_env_path(config_path, env_path)
        if env_file.exists():
            logger.info(f"Loading environment variables from {env_file}")
            env_values = load_env_values(env_file)

    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config root must be a mapping: {config_path}")

    if substitute_env:
        data = _substitute_env_vars(data, env_values)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return data


def _substitute_env_vars(
    obj: Any, env_values: Mapping[str, str] | None = None
) -> Any:
    """Recursively substitute environment variables in configuration values.

    Supports two formats:
    - ${VAR_NAME}: Braced format
    - $VAR_NAME: Simple format

    Unset variables are left as the literal placeholder and logged.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):
        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"Check your .env file or export it in your shell. "
                    f"The literal placeholder will be used."
                )
                return match.group(0)
            return value

        return _ENV_PATTERN.sub(replace_var, obj)
    return obj


def _section(config: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    current: Any = config
    for key in keys:
        if not isinstance(current, Mapping):
            return {}
        current = current.get(key) or {}
    return current if isinstance(current, Mapping) else {}


def get_server_host(config: Mapping[str, Any]) -> str:
    """Bind host: BEDROCK_PROXY_HOST, then proxy_settings.server.host."""
    host = os.getenv("BEDROCK_PROXY_HOST")
    if host:
        return host
    server_cfg = _section(config, "proxy_settings", "server")
    return str(server_cfg.get("host", DEFAULT_HOST))


def get_server_port(config: Mapping[str, Any]) -> int:
    """Bind port: BEDROCK_PROXY_PORT, then proxy_settings.server.port."""
    candidates = [os.getenv("BEDROCK_PROXY_PORT")]
    candidates.append(_section(config, "proxy_settings", "server").get("port"))
    for candidate in candidates:
        if candidate is None:
            continue
        try:
            return int(candidate)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid port value: {candidate!r}")
    return DEFAULT_PORT


def get_cors_origins(config: Mapping[str, Any]) -> list[str]:
    origins = _section(config, "proxy_settings", "cors").get("allow_origins", ["*"])
    if isinstance(origins, str):
        return [origins]
    return [str(origin) for origin in origins or []]


def get_log_level(config: Mapping[str, Any]) -> str | None:
    level = _section(config, "proxy_settings").get("log_level")
    return str(level) if level else None


def get_region(config: Mapping[str, Any]) -> str:
    """AWS region: AWS_REGION, then bedrock.region, then us-east-1."""
    region = os.getenv("AWS_REGION")
    if region:
        return region
    configured = _section(config, "bedrock").get("region")
    return str(configured) if configured else DEFAULT_REGION


def get_supported_models(config: Mapping[str, Any]) -> tuple[str, ...] | None:
    """Allow-list override from bedrock.supported_models, or None for the default."""
    models = _section(config, "bedrock").get("supported_models")
    if models is None:
        return None
    if not isinstance(models, list) or not models:
        raise ConfigurationError("bedrock.supported_models must be a non-empty list")
    if not all(isinstance(model, str) and model for model in models):
        raise ConfigurationError("bedrock.supported_models entries must be non-empty strings")
    return tuple(models)


def get_model_policy(config: Mapping[str, Any]) -> str:
    policy = str(_section(config, "bedrock").get("unsupported_model_policy", "fallback"))
    policy = policy.strip().lower()
    if policy not in MODEL_POLICIES:
        raise ConfigurationError(
            f"bedrock.unsupported_model_policy must be one of {MODEL_POLICIES}, got {policy!r}"
        )
    return policy
