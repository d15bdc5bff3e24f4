"""Subprocess execution for provider CLI calls with proper resource handling."""

import asyncio
import os
from typing import Any, Optional

import structlog

from ec2_raid.core.exceptions import ProviderCallFailed

logger = structlog.get_logger()

DEFAULT_TIMEOUT = 60  # Default timeout in seconds
KILL_TIMEOUT = 5  # Time to wait after SIGTERM before SIGKILL


class SubprocessManager:
    """Runs commands and tracks live processes so they can be cleaned up."""

    def __init__(self):
        self._active_processes: set[asyncio.subprocess.Process] = set()
        self._cleanup_lock = asyncio.Lock()

    async def run_command(
        self,
        cmd: list[str],
        *,
        timeout: Optional[float] = None,
        check: bool = True,
        env: Optional[dict[str, str]] = None,
    ) -> "SubprocessResult":
        """
        Run a command asynchronously and capture its text output.

        Args:
            cmd: Command and arguments as a list
            timeout: Timeout in seconds (default: DEFAULT_TIMEOUT)
            check: Raise exception if command fails
            env: Environment variables (defaults to a copy of os.environ)

        Returns:
            SubprocessResult with returncode, stdout, and stderr

        Raises:
            ProviderCallFailed: If check=True and the command exits non-zero,
                the executable is missing, or the call times out
        """
        if timeout is None:
            timeout = DEFAULT_TIMEOUT

        logger.debug("Executing command", command=" ".join(cmd), timeout=timeout)

        kwargs: dict[str, Any] = {
            "env": env or os.environ.copy(),
            "stdout": asyncio.subprocess.PIPE,
            "stderr": asyncio.subprocess.PIPE,
        }

        process = None
        try:
            try:
                process = await asyncio.create_subprocess_exec(*cmd, **kwargs)
            except FileNotFoundError as e:
                raise ProviderCallFailed(f"Executable not found: {cmd[0]}") from e

            async with self._cleanup_lock:
                self._active_processes.add(process)

            try:
                stdout_bytes, stderr_bytes = await asyncio.wait_for(
                    process.communicate(), timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Command timed out, terminating process",
                    command=" ".join(cmd),
                    timeout=timeout,
                    pid=process.pid,
                )
                await self._terminate(process)
                raise ProviderCallFailed(
                    f"Command timed out after {timeout} seconds: {' '.join(cmd)}"
                ) from None

            result = SubprocessResult(
                returncode=process.returncode or 0,
                stdout=stdout_bytes.decode() if stdout_bytes else "",
                stderr=stderr_bytes.decode() if stderr_bytes else "",
                cmd=cmd,
            )

            if check:
                result.check_returncode()

            return result

        finally:
            if process is not None:
                async with self._cleanup_lock:
                    self._active_processes.discard(process)

                if process.returncode is None:
                    await self._terminate(process)

    async def _terminate(self, process: asyncio.subprocess.Process) -> None:
        """Terminate a process, escalating to SIGKILL when it ignores SIGTERM."""
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=KILL_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Process did not terminate gracefully, sending SIGKILL", pid=process.pid)
            process.kill()
            await process.wait()
        except ProcessLookupError:
            # Process already terminated
            pass

    async def cleanup_all(self):
        """Cleanup all active processes."""
        async with self._cleanup_lock:
            processes = list(self._active_processes)

        if not processes:
            return

        logger.info("Cleaning up active processes", count=len(processes))

        for process in processes:
            if process.returncode is None:
                await self._terminate(process)

        async with self._cleanup_lock:
            self._active_processes.clear()


class SubprocessResult:
    """Result of a subprocess execution."""

    def __init__(self, returncode: int, stdout: str, stderr: str, cmd: list[str]):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.cmd = cmd

    @property
    def success(self) -> bool:
        """Check if the command succeeded."""
        return self.returncode == 0

    @property
    def error_message(self) -> str:
        return self.stderr.strip() or self.stdout.strip() or "Command failed"

    def check_returncode(self):
        """Raise an exception if the command failed."""
        if self.returncode != 0:
            raise ProviderCallFailed(
                f"Command failed with exit code {self.returncode}: {self.error_message}"
            )
