"""
Bind mount composition.

Order of the final list: fixed system mounts, then caller mounts in the
order given, then the capsule's data volume exactly once. Nothing here
checks that paths exist or that mount targets are distinct; the container
engine rejects conflicts and that error is surfaced as-is.
"""

import logging
from collections.abc import Iterable, Sequence
from pathlib import PurePosixPath

from capsules.config import capsule_home_dir, dotfiles_root
from capsules.schema import Config, Identity, VolumeSpec

logger = logging.getLogger(__name__)

PULSE_CONTAINER_DIR = "/run/user/host/pulse"


def fixed_mounts(config: Config, identity: Identity) -> list[VolumeSpec]:
    """Mounts every capsule gets: audio, shared memory, pulse socket, dotfiles."""
    user_home = PurePosixPath(capsule_home_dir(config)) / identity.user
    dotfiles = PurePosixPath(dotfiles_root(config))

    return [
        VolumeSpec(host_path="/dev/snd", container_path="/dev/snd", mode="rw"),
        VolumeSpec(host_path="/dev/shm", container_path="/dev/shm", mode="rw"),
        VolumeSpec(
            host_path=f"/run/user/{identity.uid}/pulse",
            container_path=PULSE_CONTAINER_DIR,
            mode="rw",
        ),
        VolumeSpec(
            host_path=str(dotfiles / "config"),
            container_path=str(user_home / ".config"),
            mode="rw",
        ),
        VolumeSpec(
            host_path=str(dotfiles / "fonts"),
            container_path=str(user_home / ".fonts"),
        ),
    ]


def compose(
    fixed: Sequence[VolumeSpec],
    caller: Iterable[VolumeSpec],
    data: VolumeSpec,
) -> list[VolumeSpec]:
    """Assemble the ordered mount list for a new capsule."""
    volumes = list(fixed)
    for volume in caller:
        if volume == data:
            logger.debug("Dropping caller mount %s, it is the data volume", volume.to_arg())
            continue
        volumes.append(volume)
    volumes.append(data)
    return volumes


def parse_volumes(values: Iterable[str]) -> list[VolumeSpec]:
    """
    Parse caller "host:container[:mode]" strings, preserving order.

    Raises:
        ValueError: On the first malformed entry
    """
    return [VolumeSpec.parse(value) for value in values]
