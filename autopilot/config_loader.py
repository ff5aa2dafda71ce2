"""
AUTOPILOT Configuration

Layered, last one wins:
  1. Built-in defaults (the models below)
  2. .autopilot/config.yaml (or an explicit path)
  3. Environment variables

Credentials are read, never requested. Missing credentials only fail when
the client that needs them is built.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

DEFAULT_CONFIG_PATH = Path(".autopilot") / "config.yaml"


class ConfigError(Exception):
    """Configuration is missing or invalid."""


class GitHubSettings(BaseModel):
    token: str = ""
    api_base: str = "https://api.github.com"


class JiraSettings(BaseModel):
    base_url: str = ""
    email: str = ""
    api_token: str = ""
    project_key: str = "DOT"
    issue_type: str = "Task"
    match_strategy: Literal["contains", "exact"] = "contains"


class ServerSettings(BaseModel):
    dashboard_url: str = "http://localhost:3000/api"


class AutopilotConfig(BaseModel):
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    jira: JiraSettings = Field(default_factory=JiraSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    http_timeout: float = 30.0
    history_dir: str = ".autopilot/logs"


SECTIONS = ("github", "jira", "server")

# env var → (section, key). Earlier names in a tuple lose to later ones.
ENV_OVERRIDES: dict[tuple[str, ...], tuple[str | None, str]] = {
    ("GHUB_TOKEN", "GITHUB_TOKEN"): ("github", "token"),
    ("GITHUB_API_BASE",): ("github", "api_base"),
    ("JIRA_BASE_URL",): ("jira", "base_url"),
    ("JIRA_EMAIL",): ("jira", "email"),
    ("JIRA_API_TOKEN",): ("jira", "api_token"),
    ("JIRA_PROJECT_KEY",): ("jira", "project_key"),
    ("JIRA_ISSUE_TYPE",): ("jira", "issue_type"),
    ("JIRA_MATCH_STRATEGY",): ("jira", "match_strategy"),
    ("AUTOPILOT_DASHBOARD_URL",): ("server", "dashboard_url"),
    ("AUTOPILOT_HTTP_TIMEOUT",): (None, "http_timeout"),
}


def _apply_env(data: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    for names, (section, key) in ENV_OVERRIDES.items():
        for name in names:
            value = environ.get(name)
            if not value:
                continue
            if section is None:
                data[key] = value
            else:
                data.setdefault(section, {})[key] = value
    return data


def load_config(
    path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> AutopilotConfig:
    """Build the effective config from defaults, YAML file, and environment."""
    environ = dict(os.environ) if environ is None else environ
    config_path = path or DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping at the top level")
        for section in SECTIONS:
            # `jira:` with nothing under it loads as None
            if data.get(section, {}) is None:
                del data[section]
            elif not isinstance(data.get(section, {}), dict):
                raise ConfigError(f"{config_path}: `{section}` must be a mapping")
        logger.debug(f"[CONFIG] Loaded {config_path}")
    elif path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        return AutopilotConfig.model_validate(_apply_env(data, environ))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration:\n{e}") from e
