import os
from pathlib import Path
import toml
from typing import Dict, Any, Optional

ENV_PREFIX = "XCODETASK_"


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    env_config = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if env_config:
        return Path(env_config)
    return Path.home() / ".xcodetask" / "config.toml"


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from TOML file."""
    config_path = Path(config_path) if config_path else get_config_path()
    if not config_path.exists():
        return {}

    try:
        return toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        raise ValueError(f"Failed to load config {config_path}: {e}")


def get_input_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    """Task input defaults from the [inputs] table."""
    inputs = config.get("inputs", {})
    if not isinstance(inputs, dict):
        raise ValueError("[inputs] in config must be a table")
    return inputs


def get_env_input(name: str) -> Optional[str]:
    """Read an input from XCODETASK_<NAME>, empty values count as unset."""
    value = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
    return value if value else None


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")
