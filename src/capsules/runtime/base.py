"""
Base class for the container engine collaborator.

A Runtime executes CommandSpecs. It is the only part of Capsules that
spawns processes, which keeps the lifecycle logic testable with a fake.

Contract:
    - run() captures output and returns a CommandResult, whatever the exit status
    - attach() connects the caller's terminal and returns the exit status
    - Both raise RuntimeInvocationError only if the engine cannot be spawned
    - Deciding what a non-zero status means is the caller's job
"""

from abc import ABC, abstractmethod

from capsules.schema import CommandResult, CommandSpec


class Runtime(ABC):
    """
    Abstract container engine.

    Subclasses must implement:
    - name property: Human-readable engine name
    - run(): Captured, non-interactive execution
    - attach(): Interactive execution with inherited standard streams
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The engine's name, for messages and logs."""
        ...

    @abstractmethod
    def run(self, spec: CommandSpec) -> CommandResult:
        """
        Execute a command and capture its output.

        Args:
            spec: The command to execute

        Returns:
            CommandResult with exit status and decoded output

        Raises:
            RuntimeInvocationError: If the engine cannot be spawned
        """
        ...

    @abstractmethod
    def attach(self, spec: CommandSpec) -> int:
        """
        Execute a command attached to the caller's terminal.

        Blocks until the process exits.

        Returns:
            The process exit status

        Raises:
            RuntimeInvocationError: If the engine cannot be spawned
        """
        ...

    def __repr__(self) -> str:
        return f"<Runtime: {self.name}>"
