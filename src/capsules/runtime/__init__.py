"""
Runtime module for Capsules.

This module separates describing a container engine command from running it.

Architecture:
    - commands: Pure builders from capsule operations to CommandSpec
    - Runtime: Abstract collaborator that executes a CommandSpec
    - PodmanRuntime: Subprocess implementation for podman-compatible engines

The lifecycle controller only ever talks to a Runtime, so tests can swap in
a fake that records commands instead of launching containers.
"""

from capsules.runtime.base import Runtime
from capsules.runtime.podman import PodmanRuntime

__all__ = [
    "Runtime",
    "PodmanRuntime",
]
