"""
Capsules - Task-centric containers that keep the host OS clean.

Capsules is a thin control surface over a podman-compatible container engine.
It provides:
- Deterministic naming (capsule-<id>) and on-disk layout per capsule
- One-shot bootstrap propagation and init at creation
- Lifecycle commands: spin, start, stop, delete, exec, console, list

Example usage:
    $ capsules spin ubuntu:latest dev1 -v ~/src:/src:rw
    $ capsules exec dev1 bash
    $ capsules console dev1
"""

__version__ = "1.0.0"
__author__ = "Capsules Contributors"

__all__ = [
    "__version__",
    "__author__",
]
