"""
Container engine command builders.

Each builder turns a logical capsule operation into a CommandSpec. Builders
never run anything; LifecycleController hands the result to a Runtime.

Command shapes (engine executable omitted):
    container list -a --format <fmt>
    run -d [flags...] --name capsule-<id> <image> sleep infinity
    start capsule-<id>
    stop capsule-<id>
    rm -f capsule-<id>
    exec -it --user=<u> capsule-<id> <cmd...>
"""

from collections.abc import Mapping, Sequence

from capsules.layout import BOOTSTRAP_DIRNAME, DATA_MOUNT_POINT, CapsuleLayout, instance_name
from capsules.schema import INSTANCE_PREFIX, CapsuleEntry, CommandSpec, Identity, VolumeSpec
from capsules.volumes import PULSE_CONTAINER_DIR

PRIVILEGED_USER = "root"
DEFAULT_SHELL = "sh"
INIT_SCRIPT = "init.sh"

# Keeps the instance alive so exec and console can attach later
KEEPALIVE_COMMAND = ("sleep", "infinity")

LIST_FORMAT = '{{printf "% -30s %-60s %-40s" .Names .Image .Status}}'

CREATE_FLAGS = (
    "--gpus",
    "all",
    "--net=host",
    "--userns=keep-id",
    f"--user={PRIVILEGED_USER}",
    "--pids-limit=-1",
)


def capsule_environment(
    identifier: str,
    identity: Identity,
    home_dir: str,
) -> dict[str, str]:
    """Environment block every capsule is created with."""
    return {
        "DISPLAY": ":0",
        "PULSE_SERVER": f"unix:{PULSE_CONTAINER_DIR}/native",
        "BOOTSTRAP": f"{identifier}.sh",
        "CAPSULE_HOMEDIR": home_dir,
        "CAPSULE_USERNAME": identity.user,
    }


def build_create(
    identifier: str,
    image: str,
    layout: CapsuleLayout,
    volumes: Sequence[VolumeSpec],
    environment: Mapping[str, str],
) -> CommandSpec:
    """
    Detached launch of a new capsule.

    The data volume is always mounted exactly once, last, whether or not
    the given volumes already contain it.
    """
    data = layout.data_volume
    mounts = [volume for volume in volumes if volume != data]
    mounts.append(data)

    args: list[str] = ["run", "-d", "-h", identifier, *CREATE_FLAGS]
    for volume in mounts:
        args += ["-v", volume.to_arg()]
    for key, value in environment.items():
        args += ["-e", f"{key}={value}"]
    args += ["--name", instance_name(identifier), image, *KEEPALIVE_COMMAND]

    return CommandSpec(args=tuple(args))


def build_start(identifier: str) -> CommandSpec:
    return CommandSpec(args=("start", instance_name(identifier)))


def build_stop(identifier: str) -> CommandSpec:
    return CommandSpec(args=("stop", instance_name(identifier)))


def build_delete(identifier: str) -> CommandSpec:
    """Forced removal, even while running."""
    return CommandSpec(args=("rm", "-f", instance_name(identifier)))


def build_exec(
    identifier: str,
    command: Sequence[str] | None,
    as_user: str,
) -> CommandSpec:
    """Interactive attach running command (or a shell) as the given user."""
    cmd = tuple(command) if command else (DEFAULT_SHELL,)
    return CommandSpec(
        args=("exec", "-it", f"--user={as_user}", instance_name(identifier), *cmd),
        interactive=True,
    )


def build_init(identifier: str) -> CommandSpec:
    """One-shot privileged run of the propagated init script."""
    script = f"{DATA_MOUNT_POINT}/{BOOTSTRAP_DIRNAME}/{INIT_SCRIPT}"
    return CommandSpec(
        args=("exec", f"--user={PRIVILEGED_USER}", instance_name(identifier), "bash", script),
        interactive=True,
    )


def build_list() -> CommandSpec:
    return CommandSpec(args=("container", "list", "-a", "--format", LIST_FORMAT))


def parse_listing(output: str) -> list[CapsuleEntry]:
    """
    Keep only capsule rows from the engine's listing output.

    Rows are "<name> <image> <status...>"; the status may contain spaces.
    """
    entries = []
    for line in output.splitlines():
        parts = line.split(None, 2)
        if not parts or INSTANCE_PREFIX not in parts[0]:
            continue
        entries.append(
            CapsuleEntry(
                name=parts[0],
                image=parts[1] if len(parts) > 1 else "",
                status=parts[2].strip() if len(parts) > 2 else "",
            )
        )
    return entries
