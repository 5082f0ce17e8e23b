"""
Schema definitions for Capsules.

This module defines the Pydantic models shared across Capsules:
- Config: Optional user settings loaded from capsules.toml
- Identity: The invoking user, resolved once per operation
- VolumeSpec: One bind mount handed to the container engine
- CommandSpec/CommandResult: What is sent to the engine and what comes back
- CapsuleEntry: One row of the capsule listing

Design Decisions:
    - Models are immutable (frozen=True); nothing is mutated after creation
    - Config ignores unknown keys so older and newer files both load
    - CommandSpec never includes the engine executable; the runtime adds it
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


# Every capsule's runtime instance name starts with this marker
INSTANCE_PREFIX = "capsule-"


# =============================================================================
# Configuration Models
# =============================================================================


class Config(BaseModel):
    """
    User configuration for capsule storage layout.

    Every field is optional; absent fields fall back to the defaults in
    capsules.config.

    Attributes:
        volumes_root: Host directory holding one data volume per capsule
        capsule_home_dir: Directory inside the capsule that holds user homes
        dotfiles_root: Host directory with config/ and fonts/ to mount
        runtime: Container engine executable
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    volumes_root: str | None = Field(
        default=None,
        description="Volumes root; relative paths resolve against the user's home",
    )
    capsule_home_dir: str | None = Field(
        default=None,
        description="Home directory root inside the capsule",
    )
    dotfiles_root: str | None = Field(
        default=None,
        description="Host directory containing config/ and fonts/ dotfiles",
    )
    runtime: str | None = Field(
        default=None,
        description="Container engine executable",
    )


class Identity(BaseModel):
    """
    The invoking user.

    Attributes:
        user: Login name, also used as the capsule user
        home: Host home directory
        uid: Numeric user id, used for the pulse socket path
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    user: str = Field(..., min_length=1, description="Invoking user's login name")
    home: Path = Field(..., description="Invoking user's home directory")
    uid: int = Field(..., ge=0, description="Invoking user's numeric id")


# =============================================================================
# Runtime Models
# =============================================================================


class VolumeSpec(BaseModel):
    """
    A single bind mount.

    Attributes:
        host_path: Source path on the host
        container_path: Mount point inside the capsule
        mode: Mount options such as "rw" or "ro" (optional)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    host_path: str = Field(..., min_length=1)
    container_path: str = Field(..., min_length=1)
    mode: str | None = Field(default=None)

    @classmethod
    def parse(cls, value: str) -> "VolumeSpec":
        """
        Parse a "host:container[:mode]" string.

        Raises:
            ValueError: If the string does not have two or three parts
        """
        parts = value.split(":")
        if len(parts) not in (2, 3) or not all(parts):
            msg = f"Invalid volume {value!r}, expected host_path:container_path[:mode]"
            raise ValueError(msg)
        mode = parts[2] if len(parts) == 3 else None
        return cls(host_path=parts[0], container_path=parts[1], mode=mode)

    def to_arg(self) -> str:
        """Render as the engine's -v argument."""
        arg = f"{self.host_path}:{self.container_path}"
        if self.mode:
            arg += f":{self.mode}"
        return arg


class CommandSpec(BaseModel):
    """
    One container engine invocation, described but not executed.

    Attributes:
        args: Arguments after the engine executable
        interactive: Attach the caller's standard streams instead of capturing
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    args: tuple[str, ...] = Field(..., min_length=1)
    interactive: bool = Field(default=False)

    def argv(self, executable: str) -> list[str]:
        """Full argument vector including the engine executable."""
        return [executable, *self.args]


class CommandResult(BaseModel):
    """
    Outcome of a captured engine invocation.

    Attributes:
        return_code: Process exit status
        stdout: Captured standard output (decoded)
        stderr: Captured standard error (decoded)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    return_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        """Whether the engine exited with status 0."""
        return self.return_code == 0


class CapsuleEntry(BaseModel):
    """A capsule row from the engine's container listing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    image: str = ""
    status: str = ""

    @property
    def identifier(self) -> str:
        """The capsule identifier, without the instance prefix."""
        if self.name.startswith(INSTANCE_PREFIX):
            return self.name[len(INSTANCE_PREFIX):]
        return self.name
