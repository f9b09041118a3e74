"""Execution-environment capability adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class SandboxHandle:
    id: str
    url: str
    created_at: int  # epoch ms
    expires_at: int | None = None
    alive: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "createdAt": self.created_at,
            "expiresAt": self.expires_at,
            "alive": self.alive,
        }


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str
    is_dir: bool
    size: int = 0


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str


@runtime_checkable
class SandboxService(Protocol):
    """File and command access to an environment behind an opaque id.

    Every method raises ``SandboxNotFoundError`` once the environment is
    gone or past its expiry horizon.
    """

    async def create(self) -> SandboxHandle: ...
    async def connect(self, sandbox_id: str) -> SandboxHandle: ...
    async def read_file(self, sandbox_id: str, path: str) -> str: ...
    async def write_file(self, sandbox_id: str, path: str, content: str) -> None: ...
    async def make_dir(self, sandbox_id: str, path: str) -> None: ...
    async def list_dir(self, sandbox_id: str, path: str = ".") -> list[FileEntry]: ...
    async def remove(self, sandbox_id: str, path: str) -> None: ...
    async def run_command(
        self, sandbox_id: str, command: str, timeout: float | None = None
    ) -> CommandResult: ...
