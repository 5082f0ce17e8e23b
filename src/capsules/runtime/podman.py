"""
Subprocess-backed container engine.

PodmanRuntime launches the engine executable (podman by default, or any
binary with the same command surface) and either captures its output or
hands it the caller's terminal.

Commands are always passed as a list with shell=False, so identifiers,
images and caller commands reach the engine as single arguments.
"""

import logging
import subprocess

from capsules.config import DEFAULT_RUNTIME
from capsules.errors import RuntimeInvocationError
from capsules.runtime.base import Runtime
from capsules.schema import CommandResult, CommandSpec

logger = logging.getLogger(__name__)


class PodmanRuntime(Runtime):
    """
    Run container engine commands as subprocesses.

    Attributes:
        executable: Engine binary, looked up in PATH

    Example:
        runtime = PodmanRuntime()
        result = runtime.run(build_stop("dev1"))
        if not result.success:
            print(result.stderr)
    """

    def __init__(self, executable: str = DEFAULT_RUNTIME) -> None:
        self.executable = executable

    @property
    def name(self) -> str:
        return self.executable

    def run(self, spec: CommandSpec) -> CommandResult:
        """Execute spec and capture stdout and stderr."""
        argv = spec.argv(self.executable)
        logger.debug("Running %s", argv)

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                shell=False,
            )
        except OSError as e:
            raise self._invocation_error(argv, e) from e

        logger.debug("%s exited with status %d", self.executable, result.returncode)
        return CommandResult(
            return_code=result.returncode,
            stdout=_decode(result.stdout),
            stderr=_decode(result.stderr),
        )

    def attach(self, spec: CommandSpec) -> int:
        """Execute spec with inherited stdin, stdout and stderr."""
        argv = spec.argv(self.executable)
        logger.debug("Attaching %s", argv)

        try:
            result = subprocess.run(argv, shell=False)
        except OSError as e:
            raise self._invocation_error(argv, e) from e

        logger.debug("%s exited with status %d", self.executable, result.returncode)
        return result.returncode

    def _invocation_error(self, argv: list[str], error: OSError) -> RuntimeInvocationError:
        if isinstance(error, FileNotFoundError):
            detail = "executable not found"
        elif isinstance(error, PermissionError):
            detail = "permission denied"
        else:
            detail = str(error)
        return RuntimeInvocationError(
            executable=self.executable,
            underlying_error=detail,
            argv=argv,
        )


def _decode(data: bytes) -> str:
    # Best effort; engine output is normally UTF-8
    return data.decode("utf-8", errors="replace")
