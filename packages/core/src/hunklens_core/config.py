import os
from pathlib import Path
from typing import Mapping, Optional

import yaml

from hunklens_core.diff import split_patterns
from hunklens_core.providers import api_key_name

DEFAULT_MODEL = "o3-mini-2025-01-31"

DEFAULT_CONFIG: dict = {
    "model": DEFAULT_MODEL,
    "exclude": [],  # glob patterns; "**" crosses directories, "*" does not
    "custom_prompt": "",
    "fallback_to_general_comment": True,
    "max_concurrency": 8,  # chunks reviewed in parallel
    "max_completion_tokens": 1000,
}

_CREDENTIAL_ENV = {
    "github_token": "GITHUB_TOKEN",
    "openai_api_key": "OPENAI_API_KEY",
    "anthropic_api_key": "ANTHROPIC_API_KEY",
}

_TRUE = {"true", "True", "TRUE"}
_FALSE = {"false", "False", "FALSE"}


def parse_bool(value) -> bool:
    """Parse a YAML 1.2 core-schema boolean, as GitHub Actions does for inputs."""
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}. Use 'true' or 'false'.")


def load_config(
    config_path: str = ".hunklens.yml",
    overrides: Optional[dict] = None,
    env: Optional[Mapping[str, str]] = None,
) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .hunklens.yml in the current directory
      3. Explicit overrides (action inputs or CLI options)
      4. Credentials from the environment, unless already set above
    """
    env = os.environ if env is None else env
    config = {**DEFAULT_CONFIG, "exclude": list(DEFAULT_CONFIG["exclude"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if overrides:
        for key, value in overrides.items():
            if value is not None:
                config[key] = value

    for key, var in _CREDENTIAL_ENV.items():
        if not config.get(key):
            config[key] = env.get(var) or None

    config["exclude"] = split_patterns(config.get("exclude"))
    config["custom_prompt"] = config.get("custom_prompt") or ""
    config["model"] = config.get("model") or DEFAULT_MODEL
    config["fallback_to_general_comment"] = parse_bool(config["fallback_to_general_comment"])
    config["max_concurrency"] = max(int(config["max_concurrency"]), 1)
    config["max_completion_tokens"] = int(config["max_completion_tokens"])

    return config


def validate_config(config: dict) -> None:
    """Raise ValueError when a credential the run needs is missing."""
    if not config.get("github_token") or not config.get(api_key_name(config["model"])):
        raise ValueError("Missing required authentication tokens")
