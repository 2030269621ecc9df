"""Runtime settings loaded from an optional YAML file plus environment overrides."""
import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "repo-analyser.yaml"


@dataclass(frozen=True)
class Settings:
    rules_dir: Optional[str] = None  # None means the packaged rule tables
    exclude: FrozenSet[str] = frozenset()
    fetch_timeout: float = 15.0  # seconds per collaborator call
    narrative_timeout: float = 60.0
    max_source_files: int = 200
    max_file_size: int = 500_000  # bytes; larger files are listed but not fetched
    fetch_concurrency: int = 8
    github_api_url: str = "https://api.github.com"
    github_token: Optional[str] = field(default=None, repr=False)
    narrative_base_url: str = "https://api.openai.com/v1"
    narrative_model: str = "gpt-4o-mini"
    narrative_api_key: Optional[str] = field(default=None, repr=False)


ENV_OVERRIDES = {
    "GITHUB_TOKEN": "github_token",
    "NARRATIVE_API_KEY": "narrative_api_key",
}


def load_config(config_file: str = DEFAULT_CONFIG_FILE) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_file: Path to the YAML configuration file

    Returns:
        Dictionary containing the configuration data (empty if the file does not exist)
    """
    if not os.path.exists(config_file):
        return {}

    with open(config_file, 'r') as f:
        data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"{config_file} must contain a mapping, got {type(data).__name__}")
        return data if data else {}


def load_settings(
    config_file: str = DEFAULT_CONFIG_FILE,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> Settings:
    """Build Settings from file values, then environment, then explicit overrides.

    Unknown keys in the file are ignored with a warning. ``None`` overrides are
    treated as "not given" so CLI defaults do not mask file values.
    """
    environ = os.environ if environ is None else environ
    known = {f.name for f in dataclasses.fields(Settings)}

    values: Dict[str, Any] = {}
    for key, value in load_config(config_file).items():
        key = str(key).replace("-", "_")
        if key not in known:
            logger.warning(f"Ignoring unknown setting '{key}' in {config_file}")
            continue
        values[key] = value

    for env_name, key in ENV_OVERRIDES.items():
        if environ.get(env_name):
            values[key] = environ[env_name]

    values.update({k: v for k, v in overrides.items() if v is not None})
    if "exclude" in values:
        values["exclude"] = frozenset(values["exclude"] or ())

    settings = Settings(**values)
    logger.debug(f"Loaded settings: {settings}")
    return settings
