"""
Integration tests for the command-line interface.

The CLI is driven through Typer's CliRunner with PodmanRuntime replaced by
the recording fake, and USER/HOME pointed at a temporary home.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from capsules import __version__, cli
from capsules.schema import CommandResult

runner = CliRunner()


@pytest.fixture
def fake_runtime(runtime, monkeypatch: pytest.MonkeyPatch, environ: dict[str, str]):
    """Route every CLI command to the recording runtime."""
    executables = []

    def make_runtime(executable: str = "podman"):
        executables.append(executable)
        return runtime

    monkeypatch.setattr(cli, "PodmanRuntime", make_runtime)
    for key, value in environ.items():
        monkeypatch.setenv(key, value)
    runtime.executables = executables
    return runtime


class TestCliBasics:
    """Tests for global options."""

    def test_version(self) -> None:
        result = runner.invoke(cli.app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(cli.app, ["--help"])
        assert result.exit_code == 0
        for name in ["list", "console", "exec", "spin", "start", "stop", "delete", "doctor"]:
            assert name in result.stdout

    def test_config_selects_runtime(self, fake_runtime, temp_dir: Path) -> None:
        config = temp_dir / "capsules.toml"
        config.write_text('runtime = "docker"\n')

        result = runner.invoke(cli.app, ["--config", str(config), "stop", "dev1"])

        assert result.exit_code == 0
        assert fake_runtime.executables == ["docker"]

    def test_default_config_from_home(self, fake_runtime, home: Path) -> None:
        config_dir = home / ".config" / "capsules"
        config_dir.mkdir(parents=True)
        (config_dir / "capsules.toml").write_text('runtime = "podman-remote"\n')

        runner.invoke(cli.app, ["stop", "dev1"])

        assert fake_runtime.executables == ["podman-remote"]

    def test_malformed_config_uses_defaults(self, fake_runtime, temp_dir: Path) -> None:
        config = temp_dir / "capsules.toml"
        config.write_text("runtime = = =")

        result = runner.invoke(cli.app, ["--config", str(config), "stop", "dev1"])

        assert result.exit_code == 0
        assert fake_runtime.executables == ["podman"]


class TestLifecycleCommands:
    """Tests for start, stop and delete."""

    @pytest.mark.parametrize(
        "command,expected,word",
        [
            ("start", ("start", "capsule-dev1"), "started"),
            ("stop", ("stop", "capsule-dev1"), "stopped"),
            ("delete", ("rm", "-f", "capsule-dev1"), "deleted"),
        ],
    )
    def test_command(self, fake_runtime, command: str, expected: tuple[str, ...], word: str) -> None:
        result = runner.invoke(cli.app, [command, "dev1"])

        assert result.exit_code == 0
        assert fake_runtime.commands == [expected]
        assert word in result.stdout

    def test_engine_error(self, fake_runtime) -> None:
        fake_runtime.responses["stop"] = CommandResult(return_code=125, stderr="no such container")

        result = runner.invoke(cli.app, ["stop", "ghost"])

        assert result.exit_code == 1
        assert "no such container" in result.stdout

    def test_invalid_identifier(self, fake_runtime) -> None:
        result = runner.invoke(cli.app, ["start", "a/b"])
        assert result.exit_code == 1
        assert "Invalid capsule identifier" in result.stdout
        assert fake_runtime.calls == []


class TestSpinCommand:
    """Tests for spin."""

    def test_spin(self, fake_runtime, bootstrap_source: Path) -> None:
        result = runner.invoke(cli.app, ["spin", "ubuntu:latest", "dev1", "-v", "/src:/src:rw"])

        assert result.exit_code == 0
        assert "capsule-dev1" in result.stdout
        create, init = fake_runtime.commands
        assert "/src:/src:rw" in create
        assert init[-1] == "/files/.bootstrap/init.sh"

    def test_missing_bootstrap(self, fake_runtime) -> None:
        result = runner.invoke(cli.app, ["spin", "ubuntu:latest", "dev1"])

        assert result.exit_code == 1
        assert "Source path does not exist" in result.stdout
        assert fake_runtime.calls == []

    @pytest.mark.parametrize("flag", ["--no-init", "-f"])
    def test_no_init(self, fake_runtime, flag: str) -> None:
        result = runner.invoke(cli.app, ["spin", "ubuntu:latest", "dev1", flag])

        assert result.exit_code == 0
        assert [args[0] for args in fake_runtime.commands] == ["run"]

    def test_volume_order(self, fake_runtime) -> None:
        runner.invoke(cli.app, ["spin", "img", "dev1", "-f", "-v", "/b:/b", "--volume", "/a:/a"])
        create = fake_runtime.commands[0]
        assert create.index("/b:/b") < create.index("/a:/a")

    def test_malformed_volume(self, fake_runtime) -> None:
        result = runner.invoke(cli.app, ["spin", "img", "dev1", "-f", "-v", "nonsense"])
        assert result.exit_code == 2
        assert fake_runtime.calls == []


class TestSessionCommands:
    """Tests for exec and console."""

    def test_exec_passes_command_through(self, fake_runtime) -> None:
        result = runner.invoke(cli.app, ["exec", "dev1", "ls", "-la", "/files"])

        assert result.exit_code == 0
        assert fake_runtime.commands == [
            ("start", "capsule-dev1"),
            ("exec", "-it", "--user=alice", "capsule-dev1", "ls", "-la", "/files"),
        ]

    def test_exec_exit_status(self, fake_runtime) -> None:
        fake_runtime.attach_code = 7
        result = runner.invoke(cli.app, ["exec", "dev1", "false"])
        assert result.exit_code == 7

    def test_console(self, fake_runtime) -> None:
        result = runner.invoke(cli.app, ["console", "dev1"])

        assert result.exit_code == 0
        assert fake_runtime.commands == [("exec", "-it", "--user=root", "capsule-dev1", "sh")]


class TestListCommand:
    """Tests for list."""

    LISTING = (
        "capsule-dev1     ubuntu:latest   Up 2 hours\n"
        "postgres         postgres:16     Up 1 day\n"
    )

    def test_table(self, fake_runtime) -> None:
        fake_runtime.responses["container"] = CommandResult(return_code=0, stdout=self.LISTING)

        result = runner.invoke(cli.app, ["list"])

        assert result.exit_code == 0
        assert "capsule-dev1" in result.stdout
        assert "postgres" not in result.stdout

    def test_json(self, fake_runtime) -> None:
        fake_runtime.responses["container"] = CommandResult(return_code=0, stdout=self.LISTING)

        result = runner.invoke(cli.app, ["list", "--json"])

        data = json.loads(result.stdout)
        assert data["count"] == 1
        assert data["capsules"][0] == {
            "identifier": "dev1",
            "name": "capsule-dev1",
            "image": "ubuntu:latest",
            "status": "Up 2 hours",
        }

    def test_empty(self, fake_runtime) -> None:
        result = runner.invoke(cli.app, ["list"])
        assert result.exit_code == 0
        assert "No capsules found" in result.stdout


class TestDoctorCommand:
    """Tests for doctor."""

    def test_json_report(self, fake_runtime, home: Path) -> None:
        result = runner.invoke(cli.app, ["doctor", "--json"])

        data = json.loads(result.stdout)
        names = [check["name"] for check in data["checks"]]
        assert names[:4] == ["Python version", "Identity", "Config", "Container engine"]
        assert data["version"] == __version__
        identity = next(c for c in data["checks"] if c["name"] == "Identity")
        assert identity["value"] == "alice"

    def test_missing_engine_fails(self, fake_runtime, temp_dir: Path) -> None:
        config = temp_dir / "capsules.toml"
        config.write_text('runtime = "capsules-no-such-engine"\n')

        result = runner.invoke(cli.app, ["--config", str(config), "doctor", "--json"])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        engine = next(c for c in data["checks"] if c["name"] == "Container engine")
        assert engine["ok"] is False

    def test_malformed_config_reported(self, fake_runtime, temp_dir: Path) -> None:
        config = temp_dir / "capsules.toml"
        config.write_text("[[[")

        result = runner.invoke(cli.app, ["--config", str(config), "doctor", "--json"])

        data = json.loads(result.stdout)
        check = next(c for c in data["checks"] if c["name"] == "Config")
        assert check["ok"] is False
        assert check["message"].startswith("Ignored")
