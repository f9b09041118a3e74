"""
Local execution environments.

Each environment is a directory under a shared root with a small metadata
file beside it recording creation and expiry. All paths are resolved inside
the environment's workspace; anything escaping it is rejected.
"""

from __future__ import annotations

import asyncio
import json
import shutil
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from ..config import SandboxConfig
from ..errors import SandboxCreateError, SandboxNotFoundError, SandboxPathError
from ..infra.logging import get_logger
from .base import CommandResult, FileEntry, SandboxHandle

logger = get_logger(__name__)


class LocalSandboxService:
    """SandboxService backed by directories on the local filesystem."""

    def __init__(
        self,
        config: SandboxConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or SandboxConfig()
        self.root_dir = Path(self.config.root_dir).resolve()
        self._clock = clock

    async def create(self) -> SandboxHandle:
        sandbox_id = f"sbx-{uuid.uuid4().hex[:12]}"
        created_at = int(self._clock() * 1000)
        expires_at = created_at + self.config.ttl_seconds * 1000
        try:
            self._workspace(sandbox_id).mkdir(parents=True, exist_ok=False)
            self._meta_path(sandbox_id).write_text(
                json.dumps({"created_at": created_at, "expires_at": expires_at}),
                encoding="utf-8",
            )
        except OSError as e:
            raise SandboxCreateError(f"Cannot create sandbox workspace: {e}", e) from e
        logger.info("sandbox.created", sandbox_id=sandbox_id)
        return self._handle(sandbox_id, created_at, expires_at)

    async def connect(self, sandbox_id: str) -> SandboxHandle:
        meta = self._load_meta(sandbox_id)
        return self._handle(sandbox_id, meta["created_at"], meta["expires_at"])

    async def read_file(self, sandbox_id: str, path: str) -> str:
        target = self._resolve(sandbox_id, path)
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return target.read_bytes().decode("utf-8")

    async def write_file(self, sandbox_id: str, path: str, content: str) -> None:
        target = self._resolve(sandbox_id, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content.encode("utf-8"))

    async def make_dir(self, sandbox_id: str, path: str) -> None:
        self._resolve(sandbox_id, path).mkdir(parents=True, exist_ok=True)

    async def list_dir(self, sandbox_id: str, path: str = ".") -> list[FileEntry]:
        target = self._resolve(sandbox_id, path)
        if not target.exists():
            raise FileNotFoundError(f"Directory not found: {path}")
        if not target.is_dir():
            raise NotADirectoryError(f"Not a directory: {path}")
        workspace = self._workspace(sandbox_id)
        return [
            FileEntry(
                name=item.name,
                path=str(item.relative_to(workspace)),
                is_dir=item.is_dir(),
                size=0 if item.is_dir() else item.stat().st_size,
            )
            for item in target.iterdir()
        ]

    async def remove(self, sandbox_id: str, path: str) -> None:
        target = self._resolve(sandbox_id, path)
        if target == self._workspace(sandbox_id):
            raise SandboxPathError(path)
        if target.is_dir():
            shutil.rmtree(target)
        elif target.exists():
            target.unlink()
        else:
            raise FileNotFoundError(f"Path not found: {path}")

    async def run_command(
        self, sandbox_id: str, command: str, timeout: float | None = None
    ) -> CommandResult:
        workspace = self._workspace(sandbox_id)
        self._load_meta(sandbox_id)
        timeout = timeout or self.config.command_timeout_seconds
        proc = await asyncio.create_subprocess_shell(
            command,
            cwd=workspace,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("sandbox.command_timeout", sandbox_id=sandbox_id, command=command)
            return CommandResult(
                exit_code=124, stdout="", stderr=f"Command timed out after {timeout}s"
            )
        return CommandResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

    async def destroy(self, sandbox_id: str) -> None:
        shutil.rmtree(self._workspace(sandbox_id), ignore_errors=True)
        self._meta_path(sandbox_id).unlink(missing_ok=True)

    # -- Internals --

    def _workspace(self, sandbox_id: str) -> Path:
        if not sandbox_id or "/" in sandbox_id or sandbox_id in (".", ".."):
            raise SandboxNotFoundError(sandbox_id)
        return self.root_dir / sandbox_id

    def _meta_path(self, sandbox_id: str) -> Path:
        return self.root_dir / f"{sandbox_id}.json"

    def _load_meta(self, sandbox_id: str) -> dict:
        meta_path = self._meta_path(sandbox_id)
        if not self._workspace(sandbox_id).is_dir() or not meta_path.is_file():
            raise SandboxNotFoundError(sandbox_id)
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
        if meta["expires_at"] is not None and self._clock() * 1000 >= meta["expires_at"]:
            raise SandboxNotFoundError(sandbox_id)
        return meta

    def _resolve(self, sandbox_id: str, path: str) -> Path:
        self._load_meta(sandbox_id)
        workspace = self._workspace(sandbox_id).resolve()
        target = Path(path)
        if not target.is_absolute():
            target = workspace / target
        else:
            # Absolute paths are interpreted relative to the workspace root.
            target = workspace / target.relative_to(target.anchor)
        resolved = target.resolve()
        try:
            resolved.relative_to(workspace)
        except ValueError:
            raise SandboxPathError(path) from None
        return resolved

    def _handle(self, sandbox_id: str, created_at: int, expires_at: int | None) -> SandboxHandle:
        url = self.config.url_template.format(id=sandbox_id, port=self.config.port)
        return SandboxHandle(id=sandbox_id, url=url, created_at=created_at, expires_at=expires_at)
