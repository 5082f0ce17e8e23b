"""
Unit tests for the subprocess-backed runtime.

Standard POSIX utilities stand in for the engine executable: a
CommandSpec's args are appended to whatever binary the runtime wraps.

Tests cover:
- Captured execution and decoding
- Non-zero exit statuses returned, not raised
- Attached execution
- Spawn failures
"""

import pytest

from capsules.errors import RuntimeInvocationError
from capsules.runtime import PodmanRuntime, Runtime
from capsules.schema import CommandSpec


class TestPodmanRuntime:
    """Tests for PodmanRuntime."""

    def test_default_executable(self) -> None:
        runtime = PodmanRuntime()
        assert runtime.name == "podman"
        assert isinstance(runtime, Runtime)
        assert "podman" in repr(runtime)

    def test_run_captures_stdout(self) -> None:
        result = PodmanRuntime("echo").run(CommandSpec(args=("capsule-dev1", "ubuntu")))
        assert result.success
        assert result.stdout == "capsule-dev1 ubuntu\n"
        assert result.stderr == ""

    def test_arguments_not_shell_interpreted(self) -> None:
        result = PodmanRuntime("echo").run(CommandSpec(args=("$HOME;", "`id`")))
        assert result.stdout == "$HOME; `id`\n"

    def test_run_nonzero_returned(self) -> None:
        result = PodmanRuntime("false").run(CommandSpec(args=("stop", "capsule-dev1")))
        assert not result.success
        assert result.return_code != 0

    def test_run_captures_stderr(self) -> None:
        result = PodmanRuntime("ls").run(CommandSpec(args=("/definitely/not/here",)))
        assert not result.success
        assert result.stderr

    def test_attach_returns_status(self) -> None:
        assert PodmanRuntime("true").attach(CommandSpec(args=("exec",), interactive=True)) == 0
        assert PodmanRuntime("false").attach(CommandSpec(args=("exec",), interactive=True)) != 0

    def test_missing_executable(self) -> None:
        runtime = PodmanRuntime("capsules-no-such-engine")
        with pytest.raises(RuntimeInvocationError) as exc_info:
            runtime.run(CommandSpec(args=("start", "capsule-dev1")))

        err = exc_info.value
        assert err.context["executable"] == "capsules-no-such-engine"
        assert err.argv == ["capsules-no-such-engine", "start", "capsule-dev1"]
        assert "not found" in err.message

    def test_missing_executable_attach(self) -> None:
        with pytest.raises(RuntimeInvocationError):
            PodmanRuntime("capsules-no-such-engine").attach(CommandSpec(args=("exec",)))

    def test_not_executable(self, temp_dir) -> None:
        script = temp_dir / "engine"
        script.write_text("#!/bin/sh\nexit 0\n")
        script.chmod(0o644)
        with pytest.raises(RuntimeInvocationError) as exc_info:
            PodmanRuntime(str(script)).run(CommandSpec(args=("list",)))
        assert "permission denied" in exc_info.value.message
