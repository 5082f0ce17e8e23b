"""
Pytest configuration and fixtures for Capsules tests.

This module provides shared fixtures used across unit, integration,
and security tests, including a Runtime fake that records every
command instead of launching containers.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from capsules.controller import LifecycleController
from capsules.runtime.base import Runtime
from capsules.schema import CommandResult, CommandSpec, Config, Identity


class RecordingRuntime(Runtime):
    """
    Runtime fake that records commands.

    run() answers from `responses`, keyed by the first engine argument
    ("run", "start", "stop", "rm", "container", "exec"), and succeeds with
    empty output otherwise. attach() returns `attach_code`.
    """

    def __init__(self) -> None:
        self.calls: list[CommandSpec] = []
        self.responses: dict[str, CommandResult] = {}
        self.attach_code = 0

    @property
    def name(self) -> str:
        return "fake-podman"

    def run(self, spec: CommandSpec) -> CommandResult:
        self.calls.append(spec)
        return self.responses.get(spec.args[0], CommandResult(return_code=0))

    def attach(self, spec: CommandSpec) -> int:
        self.calls.append(spec)
        return self.attach_code

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [spec.args for spec in self.calls]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def home(temp_dir: Path) -> Path:
    """A fake home directory for the invoking user."""
    path = temp_dir / "home" / "alice"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def environ(home: Path) -> dict[str, str]:
    """Environment identifying user alice with the fake home."""
    return {"USER": "alice", "HOME": str(home)}


@pytest.fixture
def identity(home: Path) -> Identity:
    return Identity(user="alice", home=home, uid=1000)


@pytest.fixture
def runtime() -> RecordingRuntime:
    return RecordingRuntime()


@pytest.fixture
def controller(runtime: RecordingRuntime, environ: dict[str, str]) -> LifecycleController:
    """Controller with default config, the fake runtime and the fake user."""
    return LifecycleController(Config(), runtime, environ=environ)


@pytest.fixture
def bootstrap_source(home: Path) -> Path:
    """A bootstrap tree for capsule dev1 with an init script and a nested file."""
    source = home / ".config" / "capsules" / "bootstrap" / "dev1"
    (source / "dotfiles").mkdir(parents=True)
    (source / "init.sh").write_text("#!/bin/bash\napt-get update\n")
    (source / "dev1.sh").write_text("echo dev1\n")
    (source / "dotfiles" / "bashrc").write_text("alias ll='ls -la'\n")
    return source
