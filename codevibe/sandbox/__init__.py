"""Execution environments: adapter protocol, local backend, lifecycle manager."""

from .base import CommandResult, FileEntry, SandboxHandle, SandboxService
from .local import LocalSandboxService
from .manager import Acquisition, EnvironmentManager

__all__ = [
    "CommandResult", "FileEntry", "SandboxHandle", "SandboxService",
    "LocalSandboxService", "Acquisition", "EnvironmentManager",
]
