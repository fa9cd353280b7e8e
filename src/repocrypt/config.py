"""Configuration loading and validation."""

import re
from pathlib import Path
from typing import Any

import yaml

CONFIG_NAME = ".repocrypt.yaml"

DEFAULTS: dict[str, Any] = {
    "profile": "repocrypt",
    "pattern": "secrets/**",
    "key_dir": ".repocrypt",
    "armor": True,
}

_PROFILE_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class ConfigError(Exception):
    """Raised when config is invalid."""
    pass


def get_config_path(root_dir: Path) -> Path:
    """Get path to .repocrypt.yaml in the work tree root."""
    return root_dir / CONFIG_NAME


def load_config(root_dir: Path) -> dict[str, Any]:
    """Load the crypt settings for a repository.

    A missing config file is not an error: every setting has a default.

    Args:
        root_dir: Work tree root.

    Returns:
        Settings dict with profile, pattern, key_dir and armor.

    Raises:
        ConfigError: If the file exists but is invalid.
    """
    config_path = get_config_path(root_dir)
    if not config_path.exists():
        return dict(DEFAULTS)

    try:
        with open(config_path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config: {e}")

    if config is None:
        raise ConfigError("Invalid config: empty file")

    return validate_config(config)


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate config structure and merge it over the defaults.

    Args:
        config: Raw config dict.

    Returns:
        Settings dict.

    Raises:
        ConfigError: If config is invalid.
    """
    if not isinstance(config, dict):
        raise ConfigError("Invalid config: expected mapping")

    if "version" not in config:
        raise ConfigError("Missing required field: version")

    if config["version"] != 1:
        raise ConfigError(f"Unsupported config version: {config['version']}")

    crypt = config.get("crypt", {})
    if crypt is None:
        crypt = {}
    if not isinstance(crypt, dict):
        raise ConfigError("Invalid config: crypt must be a mapping")

    unknown = sorted(set(crypt) - set(DEFAULTS))
    if unknown:
        raise ConfigError(f"Unknown field(s) in crypt: {', '.join(unknown)}")

    settings = dict(DEFAULTS)
    settings.update(crypt)

    profile = settings["profile"]
    if not isinstance(profile, str) or not _PROFILE_RE.match(profile):
        raise ConfigError(f"Invalid profile name: {profile!r}")

    pattern = settings["pattern"]
    if not isinstance(pattern, str) or not pattern.strip():
        raise ConfigError("Invalid config: pattern must be a non-empty string")
    if any(c.isspace() for c in pattern):
        raise ConfigError(f"Pattern cannot contain whitespace: {pattern!r}")

    key_dir = settings["key_dir"]
    if not isinstance(key_dir, str) or not key_dir:
        raise ConfigError("Invalid config: key_dir must be a string")
    if key_dir.startswith("/"):
        raise ConfigError(f"key_dir must be relative path: {key_dir}")
    parts = key_dir.replace("\\", "/").split("/")
    if ".." in parts:
        raise ConfigError(f"key_dir cannot contain '..': {key_dir}")
    if parts[0] == ".git":
        raise ConfigError(f"key_dir cannot be in .git/: {key_dir}")

    if not isinstance(settings["armor"], bool):
        raise ConfigError("Invalid config: armor must be true or false")

    return settings
