"""Configuration loading and validation.

Usage:
    config = load()                          # raises ConfigError on bad config
    client = SonarClient.from_config(config)
    generate_template("sonar-mcp.yaml")      # writes example file to disk

The YAML file is optional. Environment variables SONARQUBE_URL,
SONARQUBE_TOKEN and SONARQUBE_TIMEOUT override whatever the file says.
"""

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from sonar_mcp.errors import ConfigError
from sonar_mcp.logging import logger

DEFAULT_URL = "https://sonarcloud.io"
DEFAULT_CONFIG_PATH = "sonar-mcp.yaml"


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Config:
    url: str
    token: str
    timeout: float | None = None


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str | None = None) -> Config:
    """Build the configuration from an optional YAML file and the environment.

    When *config_path* is None, ``sonar-mcp.yaml`` in the working directory
    is used if it exists; otherwise only environment variables are read.

    Raises:
        ConfigError: if an explicit file is missing or malformed, or the
                     token is absent.
    """
    server = _read_file(config_path)

    url = os.environ.get("SONARQUBE_URL") or server.get("url") or ""
    token = os.environ.get("SONARQUBE_TOKEN") or server.get("token") or ""
    timeout = os.environ.get("SONARQUBE_TIMEOUT") or server.get("timeout")

    url = str(url).strip()
    if not url:
        logger.warning("SONARQUBE_URL not configured, using %s as default", DEFAULT_URL)
        url = DEFAULT_URL

    config = Config(
        url=url.rstrip("/"),
        token=str(token).strip(),
        timeout=_parse_timeout(timeout),
    )
    _validate(config)
    return config


def _read_file(config_path: str | None) -> dict:
    """Return the ``server`` mapping of the YAML file, or {} when there is none."""
    if config_path is None:
        path = Path(DEFAULT_CONFIG_PATH)
        if not path.exists():
            return {}
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(
                f"Config file not found: '{config_path}'\n"
                "Run `sonar-mcp init` to generate a template."
            )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{path}' must be a YAML mapping at the top level.")

    server = raw.get("server") or {}
    if not isinstance(server, dict):
        raise ConfigError(f"'server' in '{path}' must be a mapping.")
    return server


def _parse_timeout(value) -> float | None:
    if value is None or value == "":
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid timeout '{value}': expected a number of seconds") from exc
    if timeout <= 0:
        raise ConfigError(f"Invalid timeout '{value}': must be greater than zero")
    return timeout


def _validate(config: Config) -> None:
    """Raise ConfigError if required fields are missing."""
    errors: list[str] = []

    if not config.url.startswith(("http://", "https://")):
        errors.append(
            f"  - 'server.url' must start with http:// or https:// (got '{config.url}')"
        )
    if not config.token:
        errors.append(
            "  - SONARQUBE_TOKEN not configured (set the environment variable or 'server.token')"
        )

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
server:
  url: "https://sonarcloud.io"    # or your self-hosted SonarQube URL
  token: "squ_xxxxxxxxxxxx"       # Generate at: <your-sonar-url>/account/security
  # timeout: 30                   # seconds; omit to wait indefinitely
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template sonar-mcp.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting secrets).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
