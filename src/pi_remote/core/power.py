"""Privileged power actions (reboot, shutdown)."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, Sequence, runtime_checkable

from .exceptions import PermanentError
from .logging_utils import log_event

REBOOT_COMMAND = ("sudo", "shutdown", "-r", "now")
SHUTDOWN_COMMAND = ("sudo", "shutdown", "-h", "now")

logger = logging.getLogger(__name__)


class PowerActionError(PermanentError):
    """A power action failed; ``output`` carries the diagnostic text."""

    def __init__(self, message: str, *, output: str = "") -> None:
        super().__init__(message, user_message=output or message)
        self.output = output or message


@runtime_checkable
class PowerControl(Protocol):
    async def reboot_now(self) -> str: ...

    async def shutdown_now(self) -> str: ...


class SystemPowerControl:
    """Runs the OS power commands. No timeout: the process may not survive them."""

    def __init__(
        self,
        *,
        reboot_command: Sequence[str] = REBOOT_COMMAND,
        shutdown_command: Sequence[str] = SHUTDOWN_COMMAND,
    ) -> None:
        self._reboot_command = tuple(reboot_command)
        self._shutdown_command = tuple(shutdown_command)

    async def reboot_now(self) -> str:
        return await self._run(self._reboot_command)

    async def shutdown_now(self) -> str:
        return await self._run(self._shutdown_command)

    async def _run(self, command: tuple[str, ...]) -> str:
        log_event(logger, logging.WARNING, "power.action.running", command=command)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise PowerActionError(
                f"failed to run {command[0]}", output=str(exc)
            ) from exc
        stdout, _ = await process.communicate()
        output = stdout.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise PowerActionError(
                f"{' '.join(command)} exited with {process.returncode}",
                output=output,
            )
        return output
