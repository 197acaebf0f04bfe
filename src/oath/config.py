"""Configuration for oath."""

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .secrets import ConfigurationError


def get_config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get config directory following XDG spec."""
    environ = os.environ if environ is None else environ
    xdg_config = environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        base = Path(xdg_config)
    else:
        base = Path.home() / ".config"
    return base / "oath"


def get_config_file(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Get config file path."""
    environ = os.environ if environ is None else environ
    env_file = environ.get("OATH_CONFIG")
    if env_file:
        return Path(env_file).expanduser()
    return get_config_dir(environ) / "config.yaml"


def get_default_store_dir() -> Path:
    """Get default store directory (same place the shell plugin used)."""
    return Path.home() / ".oath"


def get_default_gpg() -> str:
    """Prefer gpg2 when it is installed, plain gpg otherwise."""
    if shutil.which("gpg2"):
        return "gpg2"
    return "gpg"


def read_config_file(path: Path) -> dict:
    """Read the YAML config file. A missing file is an empty config."""
    if not path.exists():
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


@dataclass(frozen=True)
class OperatorCredentials:
    """Which key decrypts and which recipient encrypts."""

    email: str
    key_id: str


@dataclass(frozen=True)
class Settings:
    """Everything an invocation needs, resolved once at startup."""

    store_dir: Path
    gpg_binary: str
    email: str = ""
    key_id: str = ""

    def credentials(self) -> OperatorCredentials:
        """
        Validate the operator identity.

        Runs before any store or crypto work; nothing proceeds on failure.
        """
        if not self.email:
            raise ConfigurationError(
                "Missing $OATH_EMAIL variable (or 'email' in the config file)"
            )
        if not self.key_id:
            raise ConfigurationError(
                "Missing $OATH_KEY variable (or 'key' in the config file)"
            )
        if "/" in self.key_id or "\\" in self.key_id:
            raise ConfigurationError(f"Invalid $OATH_KEY: {self.key_id}")
        return OperatorCredentials(email=self.email, key_id=self.key_id)


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    config_file: Optional[Path] = None,
    store_dir: Optional[Path] = None,
) -> Settings:
    """
    Build Settings from, in priority order: arguments, environment,
    config file and defaults.
    """
    environ = os.environ if environ is None else environ
    config_file = config_file or get_config_file(environ)
    file_config = read_config_file(config_file)

    def pick(env_name: str, file_key: str) -> str:
        value = environ.get(env_name)
        if value is None:
            value = file_config.get(file_key)
        return "" if value is None else str(value).strip()

    if store_dir is None:
        configured_dir = pick("OATH_DIR", "dir")
        store_dir = Path(configured_dir) if configured_dir else get_default_store_dir()

    return Settings(
        store_dir=Path(store_dir).expanduser(),
        gpg_binary=pick("OATH_GPG", "gpg") or get_default_gpg(),
        email=pick("OATH_EMAIL", "email"),
        key_id=pick("OATH_KEY", "key"),
    )
