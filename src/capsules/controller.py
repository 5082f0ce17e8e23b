"""
Lifecycle controller for Capsules.

The controller is the orchestration layer behind every public operation.
It coordinates between:
- Identity and layout: who is asking and where the capsule lives
- Bootstrap propagation: staging the capsule's bootstrap tree
- Command builders: what to ask of the container engine
- Runtime: the engine itself

Spin sequence:
    1. Check the bootstrap source exists (only when init is requested)
    2. Create the capsule home directory
    3. Copy the bootstrap tree into staging
    4. Compose volumes and create the instance
    5. Run the init script inside the instance (only when init is requested)

Any failing step raises and the remaining steps are not attempted.
Capsule state (running, stopped, absent) is owned by the engine and never
tracked here.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from capsules.bootstrap import copy_tree
from capsules.config import capsule_home_dir
from capsules.errors import BootstrapSourceMissingError, CapsuleIOError, RuntimeReportedError
from capsules.layout import CapsuleLayout, resolve_identity, resolve_layout, validate_identifier
from capsules.runtime import commands
from capsules.runtime.base import Runtime
from capsules.schema import CapsuleEntry, CommandResult, CommandSpec, Config, VolumeSpec
from capsules.volumes import compose, fixed_mounts

logger = logging.getLogger(__name__)


@dataclass
class SpinResult:
    """
    Result of creating a capsule.

    Attributes:
        layout: Paths and names of the new capsule
        container_id: Engine output from the create command
        files_staged: Number of bootstrap files copied
        init_return_code: Exit status of the init script, None if not run
    """

    layout: CapsuleLayout
    container_id: str
    files_staged: int = 0
    init_return_code: int | None = None

    @property
    def instance_name(self) -> str:
        return self.layout.instance_name


class LifecycleController:
    """
    Orchestrates capsule operations against a container engine.

    Usage:
        controller = LifecycleController(load_config(path), PodmanRuntime())
        controller.spin("dev1", "ubuntu:latest")
        controller.exec("dev1", ["bash"])

    Attributes:
        config: Loaded user configuration
        runtime: The container engine collaborator
    """

    def __init__(
        self,
        config: Config,
        runtime: Runtime,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            config: User configuration (read-only)
            runtime: Container engine collaborator
            environ: Environment for identity lookup; defaults to os.environ,
                read afresh at the start of each operation
        """
        self.config = config
        self.runtime = runtime
        self._environ = environ

    def spin(
        self,
        identifier: str,
        image: str,
        volumes: Iterable[VolumeSpec] = (),
        init: bool = True,
    ) -> SpinResult:
        """
        Create and start a new capsule.

        Args:
            identifier: Name of the new capsule
            image: Image to create it from
            volumes: Extra bind mounts, appended after the fixed ones
            init: Stage the bootstrap tree and run its init.sh

        Returns:
            SpinResult describing the new capsule

        Raises:
            ConfigurationError: If USER or HOME is unavailable
            InvalidIdentifierError: If the identifier is not name-safe
            BootstrapSourceMissingError: If init is requested without a source
            CapsuleIOError: If the home or staging directory cannot be written
            RuntimeInvocationError: If the engine cannot be spawned
            RuntimeReportedError: If create or init exits non-zero
        """
        validate_identifier(identifier)
        identity = resolve_identity(self._environ)
        layout = resolve_layout(identifier, self.config, identity)

        source_present = layout.bootstrap_source.is_dir()
        if init and not source_present:
            raise BootstrapSourceMissingError(
                identifier=identifier,
                source_path=str(layout.bootstrap_source),
            )

        try:
            layout.home.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CapsuleIOError(path=str(layout.home), operation="create", underlying_error=str(e)) from e
        logger.debug("Home directory ready at %s", layout.home)

        files_staged = 0
        if source_present:
            files_staged = copy_tree(layout.bootstrap_source, layout.bootstrap_staging)
        else:
            logger.info("No bootstrap source at %s, skipping propagation", layout.bootstrap_source)

        home_dir = capsule_home_dir(self.config)
        mounts = compose(fixed_mounts(self.config, identity), volumes, layout.data_volume)
        environment = commands.capsule_environment(identifier, identity, home_dir)

        create = commands.build_create(identifier, image, layout, mounts, environment)
        result = self._run(create)
        logger.info("Capsule %s created from %s", layout.instance_name, image)

        init_return_code = None
        if init:
            init_return_code = self._attach(commands.build_init(identifier), check=True)

        return SpinResult(
            layout=layout,
            container_id=result.stdout.strip(),
            files_staged=files_staged,
            init_return_code=init_return_code,
        )

    def start(self, identifier: str) -> CommandResult:
        """Start a stopped capsule. The engine reports unknown capsules."""
        return self._run(commands.build_start(identifier))

    def stop(self, identifier: str) -> CommandResult:
        return self._run(commands.build_stop(identifier))

    def delete(self, identifier: str) -> CommandResult:
        """Remove a capsule in any state. Its data volume is kept."""
        return self._run(commands.build_delete(identifier))

    def exec(self, identifier: str, command: Sequence[str] | None = None) -> int:
        """
        Run a command in a capsule as the invoking user.

        The capsule is started first; starting a running capsule is a no-op.

        Returns:
            Exit status of the command
        """
        validate_identifier(identifier)
        identity = resolve_identity(self._environ)
        self._run(commands.build_start(identifier))
        return self._attach(commands.build_exec(identifier, command, identity.user))

    def console(self, identifier: str, command: Sequence[str] | None = None) -> int:
        """
        Open a root session in a capsule.

        Unlike exec, this does not start the capsule. Attaching to a stopped
        capsule fails with the engine's own error.

        Returns:
            Exit status of the session
        """
        spec = commands.build_exec(identifier, command, commands.PRIVILEGED_USER)
        return self._attach(spec)

    def list(self) -> list[CapsuleEntry]:
        """Snapshot of all capsules known to the engine, in engine order."""
        result = self._run(commands.build_list())
        return commands.parse_listing(result.stdout)

    def _run(self, spec: CommandSpec) -> CommandResult:
        result = self.runtime.run(spec)
        if not result.success:
            raise RuntimeReportedError(
                return_code=result.return_code,
                stdout=result.stdout,
                stderr=result.stderr,
                argv=spec.argv(self.runtime.name),
            )
        return result

    def _attach(self, spec: CommandSpec, check: bool = False) -> int:
        return_code = self.runtime.attach(spec)
        if check and return_code != 0:
            raise RuntimeReportedError(
                return_code=return_code,
                argv=spec.argv(self.runtime.name),
            )
        return return_code
