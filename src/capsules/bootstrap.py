"""
Bootstrap propagation.

A capsule's bootstrap tree lives under ~/.config/capsules/bootstrap/<id> and
is copied into <volume_root>/.bootstrap at creation, where the init script
picks it up as /files/.bootstrap inside the capsule.

The copy is plain: directories and regular file contents only.
Permission bits, ownership and timestamps are not carried over, and
symbolic links are followed. Existing destination entries are overwritten
one by one; entries that exist only in the destination are left alone.
A failure midway leaves a partially populated staging directory, which
the next spin overwrites again.
"""

import logging
import shutil
from pathlib import Path

from capsules.errors import BootstrapSourceMissingError, CapsuleIOError

logger = logging.getLogger(__name__)


def copy_tree(source: Path | str, destination: Path | str) -> int:
    """
    Recursively copy source into destination.

    Args:
        source: Bootstrap directory to copy
        destination: Staging directory; created with its ancestors if needed

    Returns:
        Number of files copied

    Raises:
        BootstrapSourceMissingError: If source is not a directory
        CapsuleIOError: If any directory or file cannot be created
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise BootstrapSourceMissingError(source_path=str(source))

    copied = _copy_dir(source, destination)
    logger.debug("Copied %d bootstrap file(s) from %s to %s", copied, source, destination)
    return copied


def _copy_dir(source: Path, destination: Path) -> int:
    try:
        destination.mkdir(parents=True, exist_ok=True)
        entries = sorted(source.iterdir())
    except OSError as e:
        raise CapsuleIOError(path=str(destination), operation="create", underlying_error=str(e)) from e

    copied = 0
    for entry in entries:
        target = destination / entry.name
        if entry.is_dir():
            copied += _copy_dir(entry, target)
            continue
        try:
            shutil.copyfile(entry, target)
        except OSError as e:
            raise CapsuleIOError(path=str(target), operation="copy", underlying_error=str(e)) from e
        copied += 1

    return copied
