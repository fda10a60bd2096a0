import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

# Environment variables that fill values missing from the rules file
SMTP_ENV = {
    "host": "SUBSCRIBE_SMTP_HOST",
    "port": "SUBSCRIBE_SMTP_PORT",
    "user": "SUBSCRIBE_SMTP_USER",
    "password": "SUBSCRIBE_SMTP_PASS",
    "from": "SUBSCRIBE_SMTP_FROM",
}
TOP_LEVEL_ENV = {
    "base_url": "SUBSCRIBE_BASE_URL",
    "base_path": "SUBSCRIBE_BASE_PATH",
    "admin_email": "SUBSCRIBE_ADMIN_EMAIL",
}


def apply_environment(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Fill unset values from the environment.

    Values present in the file win; backend credentials are looked up as
    <KIND>_API_KEY / <KIND>_API_SECRET (e.g. MAILGUN_API_KEY).
    """
    merged = dict(data)

    for key, env_var in TOP_LEVEL_ENV.items():
        if not merged.get(key) and environ.get(env_var):
            merged[key] = environ[env_var]

    smtp = dict(merged.get("smtp") or {})
    for key, env_var in SMTP_ENV.items():
        if not smtp.get(key) and environ.get(env_var):
            smtp[key] = environ[env_var]
    merged["smtp"] = smtp

    backends = []
    for backend in merged.get("backends") or []:
        backend = dict(backend)
        prefix = str(backend.get("kind", "")).upper()
        if not backend.get("api_key") and environ.get(f"{prefix}_API_KEY"):
            backend["api_key"] = environ[f"{prefix}_API_KEY"]
        if not backend.get("api_secret") and environ.get(f"{prefix}_API_SECRET"):
            backend["api_secret"] = environ[f"{prefix}_API_SECRET"]
        backends.append(backend)
    merged["backends"] = backends

    return merged


def parse_rules(data: dict[str, Any] | None, environ: Mapping[str, str] | None = None) -> Rules:
    """Validate a raw mapping (plus environment) into Rules."""
    env = os.environ if environ is None else environ
    try:
        return Rules.model_validate(apply_environment(data or {}, env))
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e


def load_rules(path: Path | None, environ: Mapping[str, str] | None = None) -> Rules:
    """
    Load and validate the rules file.
    Without a path, rules come from defaults and the environment only.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if path is None:
        return parse_rules({}, environ)

    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ValueError("Rules file must contain a mapping at the top level")

    return parse_rules(data, environ)
