"""Environment lifecycle: create, verify, reuse, replace."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ..errors import SandboxCreateError, SandboxError
from ..infra.logging import get_logger
from .base import SandboxHandle, SandboxService

logger = get_logger(__name__)


@dataclass(frozen=True)
class Acquisition:
    handle: SandboxHandle
    is_new: bool
    replaced_old: str | None = None

    def to_payload(self) -> dict:
        payload = {
            "id": self.handle.id,
            "url": self.handle.url,
            "isNew": self.is_new,
            "createdAt": self.handle.created_at,
        }
        if self.replaced_old:
            payload["replacedOld"] = self.replaced_old
        return payload


ChangeHandler = Callable[[Acquisition], Awaitable[None]]


class EnvironmentManager:
    """Hands out live environment handles.

    A supplied reference is verified by resolving its address; a dead one is
    replaced wholesale by a fresh environment and the change is reported
    through ``on_change`` so the caller can persist the substitution.
    Creation failures propagate as ``SandboxCreateError`` and are not retried.
    """

    def __init__(self, service: SandboxService) -> None:
        self.service = service

    async def acquire(
        self, ref: str | None = None, on_change: ChangeHandler | None = None
    ) -> Acquisition:
        if ref:
            handle = await self._resolve(ref)
            if handle is not None:
                logger.debug("sandbox.reused", sandbox_id=ref)
                return Acquisition(handle=handle, is_new=False)
            logger.warning("sandbox.replaced", sandbox_id=ref)
            acquisition = Acquisition(handle=await self.create(), is_new=True, replaced_old=ref)
        else:
            acquisition = Acquisition(handle=await self.create(), is_new=True)

        if on_change is not None:
            await on_change(acquisition)
        return acquisition

    async def create(self) -> SandboxHandle:
        try:
            return await self.service.create()
        except SandboxCreateError:
            raise
        except Exception as e:
            raise SandboxCreateError(f"Failed to create sandbox: {e}", e) from e

    async def verify(self, ref: str) -> bool:
        return await self._resolve(ref) is not None

    async def _resolve(self, ref: str) -> SandboxHandle | None:
        try:
            return await self.service.connect(ref)
        except SandboxError as e:
            logger.info("sandbox.unreachable", sandbox_id=ref, reason=str(e))
            return None
