"""
Exception hierarchy for Capsules.

All Capsules exceptions inherit from CapsulesError, allowing callers to catch
every lifecycle failure with a single except clause.

Exception Categories:
    - ConfigurationError: Invoking user's identity cannot be determined
    - PreconditionError: A required input is missing or malformed
    - CapsuleIOError: Creating directories or copying files failed
    - RuntimeInvocationError: The container engine could not be spawned
    - RuntimeReportedError: The container engine ran but exited non-zero

Every error aborts the current operation. Nothing is retried and no
partial progress is reconciled.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Configuration errors: 1xxx
ERROR_CONFIG_IDENTITY = 1001

# Precondition errors: 2xxx
ERROR_PRECONDITION = 2000
ERROR_BOOTSTRAP_MISSING = 2001
ERROR_INVALID_IDENTIFIER = 2002

# Filesystem errors: 3xxx
ERROR_IO = 3001

# Runtime errors: 4xxx
ERROR_RUNTIME_INVOCATION = 4001
ERROR_RUNTIME_REPORTED = 4002


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class CapsulesError(Exception):
    """
    Base exception for all Capsules errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigurationError(CapsulesError):
    """
    Raised when the invoking user's identity cannot be determined.

    Attributes:
        variable: The environment variable that was absent or empty
    """

    variable: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"${self.variable} is not set or cannot be used"
        if self.code == 0:
            self.code = ERROR_CONFIG_IDENTITY
        if not self.suggestion:
            self.suggestion = f"Export {self.variable} before running capsules"
        self.context["variable"] = self.variable


# =============================================================================
# Precondition Errors
# =============================================================================


@dataclass
class PreconditionError(CapsulesError):
    """
    Base class for failed preconditions.

    These are detected before the container engine is invoked.

    Attributes:
        identifier: The capsule the operation was aimed at
    """

    identifier: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if self.code == 0:
            self.code = ERROR_PRECONDITION
        self.context["identifier"] = self.identifier


@dataclass
class BootstrapSourceMissingError(PreconditionError):
    """Raised when init is requested but the bootstrap source is absent."""

    source_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Source path does not exist: {self.source_path}"
        if self.code == 0:
            self.code = ERROR_BOOTSTRAP_MISSING
        if not self.suggestion:
            self.suggestion = "Create the bootstrap directory or spin with --no-init"
        super().__post_init__()
        self.context["source_path"] = self.source_path


@dataclass
class InvalidIdentifierError(PreconditionError):
    """Raised when a capsule identifier cannot be used as a name or path."""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.identifier:
                self.message = f"Invalid capsule identifier: {self.identifier!r}"
            else:
                self.message = "Capsule identifier cannot be empty"
        if self.code == 0:
            self.code = ERROR_INVALID_IDENTIFIER
        if not self.suggestion:
            self.suggestion = "Use letters, digits, '_', '.' or '-', starting with a letter or digit"
        super().__post_init__()


# =============================================================================
# Filesystem Errors
# =============================================================================


@dataclass
class CapsuleIOError(CapsulesError):
    """
    Raised when a filesystem step fails.

    Attributes:
        path: The path being created or copied
        operation: What was being done (e.g., "mkdir", "copy")
        underlying_error: The original OS error text
    """

    path: str = ""
    operation: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to {self.operation} {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_IO
        self.context.update({
            "path": self.path,
            "operation": self.operation,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Runtime Errors
# =============================================================================


@dataclass
class RuntimeCommandError(CapsulesError):
    """
    Base class for container engine failures.

    Attributes:
        argv: The full argument vector that was launched
    """

    argv: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["argv"] = self.argv


@dataclass
class RuntimeInvocationError(RuntimeCommandError):
    """Raised when the container engine process cannot be spawned at all."""

    executable: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to execute {self.executable}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_RUNTIME_INVOCATION
        if not self.suggestion:
            self.suggestion = "Check that the container engine is installed and on PATH"
        super().__post_init__()
        self.context.update({
            "executable": self.executable,
            "underlying_error": self.underlying_error,
        })


@dataclass
class RuntimeReportedError(RuntimeCommandError):
    """Raised when the container engine exits non-zero."""

    return_code: int = 0
    stdout: str = ""
    stderr: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            detail = self.stderr.strip() or self.stdout.strip()
            self.message = f"Runtime exited with status {self.return_code}"
            if detail:
                self.message += f": {detail}"
        if self.code == 0:
            self.code = ERROR_RUNTIME_REPORTED
        super().__post_init__()
        self.context.update({
            "return_code": self.return_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
        })
