"""
Identity and path layout for capsules.

Every name and path a capsule uses is derived here, from three inputs:
the identifier, the Config, and the invoking user's Identity.

    bootstrap source   ~/.config/capsules/bootstrap/<id>
    volume root        <volumes_root>/<id>              -> /files in the capsule
    home               <volumes_root>/<id>/home/<user>
    bootstrap staging  <volumes_root>/<id>/.bootstrap   -> /files/.bootstrap
    instance name      capsule-<id>
"""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from capsules.config import CONFIG_DIR, volumes_root_path
from capsules.errors import ConfigurationError, InvalidIdentifierError
from capsules.schema import INSTANCE_PREFIX, Config, Identity, VolumeSpec

# Container engines accept this grammar for instance names
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

# Where the capsule's volume root is mounted inside the capsule
DATA_MOUNT_POINT = "/files"
BOOTSTRAP_DIRNAME = ".bootstrap"


def resolve_identity(
    environ: Mapping[str, str] | None = None,
    uid: int | None = None,
) -> Identity:
    """
    Resolve the invoking user from the environment.

    Args:
        environ: Environment to read; defaults to os.environ at call time
        uid: Numeric user id; defaults to os.getuid()

    Raises:
        ConfigurationError: If USER or HOME is absent or blank
    """
    if environ is None:
        environ = os.environ

    user = environ.get("USER", "").strip()
    if not user:
        raise ConfigurationError(variable="USER")

    home = environ.get("HOME", "").strip()
    if not home:
        raise ConfigurationError(variable="HOME")

    return Identity(
        user=user,
        home=Path(home),
        uid=os.getuid() if uid is None else uid,
    )


def validate_identifier(identifier: str) -> str:
    """Return the identifier unchanged, or raise InvalidIdentifierError."""
    if not identifier or not IDENTIFIER_PATTERN.fullmatch(identifier):
        raise InvalidIdentifierError(identifier=identifier)
    return identifier


def instance_name(identifier: str) -> str:
    """The container engine's name for a capsule."""
    return f"{INSTANCE_PREFIX}{validate_identifier(identifier)}"


def bootstrap_root(identity: Identity) -> Path:
    """Directory holding one bootstrap tree per capsule identifier."""
    return identity.home / CONFIG_DIR / "bootstrap"


@dataclass(frozen=True)
class CapsuleLayout:
    """
    Filesystem and naming layout of one capsule.

    Attributes:
        identifier: The capsule identifier
        instance_name: Name of the engine instance
        bootstrap_source: Per-capsule bootstrap tree on the host
        volume_root: The capsule's data volume root on the host
        home: The capsule user's home, inside the data volume
        bootstrap_staging: Where the bootstrap tree is copied
    """

    identifier: str
    instance_name: str
    bootstrap_source: Path
    volume_root: Path
    home: Path
    bootstrap_staging: Path

    @property
    def data_volume(self) -> VolumeSpec:
        """The capsule's own data volume mount."""
        return VolumeSpec(
            host_path=str(self.volume_root),
            container_path=DATA_MOUNT_POINT,
            mode="rw",
        )


def resolve_layout(identifier: str, config: Config, identity: Identity) -> CapsuleLayout:
    """
    Derive the layout for a capsule.

    Pure function of its inputs; nothing is created on disk.

    Raises:
        InvalidIdentifierError: If the identifier is empty or not name-safe
    """
    name = instance_name(identifier)
    volume_root = volumes_root_path(config, identity) / identifier

    return CapsuleLayout(
        identifier=identifier,
        instance_name=name,
        bootstrap_source=bootstrap_root(identity) / identifier,
        volume_root=volume_root,
        home=volume_root / "home" / identity.user,
        bootstrap_staging=volume_root / BOOTSTRAP_DIRNAME,
    )
