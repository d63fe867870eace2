"""Config Loader - Builds a ClientProfile from a YAML file.

Example profile file:

    base_url: api.example.com
    timeout: 10
    max_redirects: 5
    headers:
      Authorization: Bearer ${API_TOKEN}
      Accept: application/vnd.example+json
    query:
      locale: [en, fr]
    cookies:
      session: ${SESSION_ID}

``${ENV_VAR}`` references inside string values are replaced from the
environment. Transports, interceptors and codecs cannot be expressed in YAML;
pass them as keyword overrides.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml

from courier.errors import ConfigError
from courier.models import ClientProfile

_ENV_REF = re.compile(r"\$\{([^}]+)\}")


def load_profile(config_path: Path | str, **overrides: Any) -> ClientProfile:
    """Load a ClientProfile from YAML, applying *overrides* on top.

    Raises:
        ConfigError: If the file is missing, is not a YAML mapping, references
            an unset environment variable, or fails model validation.
    """
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Profile file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in profile file: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("Profile file must be a YAML mapping")

    return profile_from_mapping(raw, **overrides)


def profile_from_mapping(data: dict[str, Any], **overrides: Any) -> ClientProfile:
    """Validate an already-parsed mapping as a ClientProfile."""
    resolved = _expand_env(data)
    resolved.update(overrides)
    try:
        return ClientProfile.model_validate(resolved)
    except Exception as e:
        raise ConfigError(f"Invalid profile structure: {e}") from e


def _expand_env(data: Any) -> Any:
    """Replace ${ENV_VAR} in every string nested inside *data*."""
    if isinstance(data, str):
        return _ENV_REF.sub(_env_value, data)
    if isinstance(data, dict):
        return {k: _expand_env(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env(item) for item in data]
    return data


def _env_value(match: re.Match) -> str:
    name = match.group(1)
    value = os.environ.get(name)
    if value is None:
        raise ConfigError(f"Environment variable '{name}' is not set")
    return value
