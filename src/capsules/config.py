"""
Configuration loading for Capsules.

The configuration file is optional and owned by the user:

    ~/.config/capsules/capsules.toml

    volumes_root = "vols"              # relative to $HOME, or absolute
    capsule_home_dir = "/home"
    dotfiles_root = "/files/projects/dotfiles"
    runtime = "podman"

A missing or malformed file never fails the process; it degrades to the
defaults below. Only doctor uses the strict parse_config() to report why.
"""

import logging
import tomllib
from pathlib import Path

from pydantic import ValidationError

from capsules.schema import Config, Identity

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(".config") / "capsules"
CONFIG_FILENAME = "capsules.toml"

DEFAULT_VOLUMES_ROOT = Path(".local") / "capsules" / "volumes"
DEFAULT_CAPSULE_HOME_DIR = "/home"
DEFAULT_DOTFILES_ROOT = "/files/projects/dotfiles"
DEFAULT_RUNTIME = "podman"


def default_config_path(home: Path | str) -> Path:
    """Return the per-user config file location under the given home."""
    return Path(home) / CONFIG_DIR / CONFIG_FILENAME


def parse_config(content: str) -> Config:
    """
    Parse TOML text into a Config.

    Raises:
        tomllib.TOMLDecodeError: If the text is not valid TOML
        ValidationError: If a known key has the wrong type
    """
    data = tomllib.loads(content)
    return Config.model_validate(data)


def load_config(path: Path | str | None) -> Config:
    """
    Load the configuration file, falling back to defaults.

    Args:
        path: Config file to read; None means no file is available

    Returns:
        The parsed Config, or Config() if the file is absent or malformed
    """
    if path is None:
        logger.debug("No config path available, using defaults")
        return Config()

    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("Config file %s not found, using defaults", path)
        return Config()
    except (OSError, UnicodeDecodeError) as e:
        logger.info("Cannot read config file %s (%s), using defaults", path, e)
        return Config()

    try:
        return parse_config(content)
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        logger.info("Ignoring malformed config file %s: %s", path, e)
        return Config()


def volumes_root_path(config: Config, identity: Identity) -> Path:
    """Absolute host directory under which every capsule's volume lives."""
    if config.volumes_root:
        root = Path(config.volumes_root)
        if root.is_absolute():
            return root
        return identity.home / root
    return identity.home / DEFAULT_VOLUMES_ROOT


def capsule_home_dir(config: Config) -> str:
    return config.capsule_home_dir or DEFAULT_CAPSULE_HOME_DIR


def dotfiles_root(config: Config) -> str:
    return config.dotfiles_root or DEFAULT_DOTFILES_ROOT


def runtime_executable(config: Config) -> str:
    return config.runtime or DEFAULT_RUNTIME
