"""
External command port for native voice providers.

Providers never spawn processes directly; they go through a
``CommandRunner`` so tests can substitute a fake that records the
argument vectors and returns canned exit codes without touching the OS.
"""

import asyncio
import logging
import shutil
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("pai-server.voice.process")


@dataclass
class CommandResult:
    """Outcome of a finished external command.

    Attributes:
        returncode: Process exit code.
        stdout: Decoded standard output.
        stderr: Decoded standard error.
    """

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs external commands on the asyncio event loop.

    ``run`` raises ``FileNotFoundError`` / ``PermissionError`` when the
    executable cannot be started; a started process that fails is
    reported through ``CommandResult.returncode`` instead.
    """

    def which(self, command: str) -> Optional[str]:
        """Return the resolved path of ``command`` on PATH, or None."""
        return shutil.which(command)

    async def run(self, *args: str) -> CommandResult:
        """Spawn ``args`` and wait for it to exit.

        If the awaiting task is cancelled (for example by a timeout) the
        child process is killed before the cancellation propagates.

        Args:
            *args: Program followed by its arguments.

        Returns:
            CommandResult with exit code and captured output.
        """
        logger.debug("Spawning %s", args[0])
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            logger.warning("Killed %s after cancellation", args[0])
            raise

        return CommandResult(
            returncode=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )


__all__ = ["CommandResult", "CommandRunner"]
