"""
mtr subprocess runner
"""

import asyncio
import logging
import os
import shlex
import signal
from typing import Optional

from ..config import DEFAULT_MAX_HOPS, DEFAULT_MTR_BIN, DEFAULT_MTR_COUNT, DEFAULT_TRACE_TIMEOUT
from ..errors import ExecutionError
from ..models import Hop
from .parser import TraceOutputParser


logger = logging.getLogger(__name__)


class TraceRunner:
    """
    Runs mtr once per call and parses its report.

    The target is appended last and passed as a separate argv entry;
    no shell is involved. Callers are still expected to validate the
    target first (see routemap.validation).
    """

    def __init__(
        self,
        mtr_bin: str = DEFAULT_MTR_BIN,
        count: int = DEFAULT_MTR_COUNT,
        max_hops: int = DEFAULT_MAX_HOPS,
        timeout: float = DEFAULT_TRACE_TIMEOUT,
        parser: Optional[TraceOutputParser] = None
    ):
        self.mtr_bin = mtr_bin
        self.count = count
        self.max_hops = max_hops
        self.timeout = timeout
        self.parser = parser or TraceOutputParser()

    def build_command(self, target: str, hop_limit: Optional[int] = None) -> list[str]:
        """Build the mtr argv for a target"""
        return [
            self.mtr_bin,
            '--report',
            '--report-wide',
            '-c', str(self.count),
            '-m', str(hop_limit if hop_limit is not None else self.max_hops),
            '--json',
            target,
        ]

    async def run(
        self,
        target: str,
        hop_limit: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> list[Hop]:
        """
        Trace the route to a target.

        Args:
            target: Validated hostname or IP address
            hop_limit: Maximum TTL (defaults to max_hops when None)
            timeout: Seconds before the process is killed (defaults to timeout)

        Returns:
            Ordered list of Hop

        Raises:
            ExecutionError: If mtr cannot start, times out, or exits
                with an error and no usable output
        """
        cmd = self.build_command(target, hop_limit)
        timeout = timeout if timeout is not None else self.timeout
        logger.info("Executing: %s", shlex.join(cmd))

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=(os.name == 'posix'),
            )
        except OSError as e:
            raise ExecutionError(f"Cannot start {self.mtr_bin}: {e}", command=cmd) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            raise ExecutionError(
                f"{self.mtr_bin} timed out after {timeout:g}s",
                command=cmd,
            ) from None
        finally:
            await self._reap(proc)

        out = stdout.decode('utf-8', errors='replace')
        err = stderr.decode('utf-8', errors='replace').strip()

        if err:
            logger.warning("mtr stderr: %s", err)

        hops = self.parser.parse(out)

        if proc.returncode != 0:
            if not hops:
                raise ExecutionError(
                    f"{self.mtr_bin} exited with status {proc.returncode}"
                    + (f": {err}" if err else ""),
                    command=cmd,
                    returncode=proc.returncode,
                    stderr=err or None,
                )
            logger.warning("mtr exited with status %d, using %d parsed hops",
                           proc.returncode, len(hops))

        return hops

    @staticmethod
    async def _reap(proc: asyncio.subprocess.Process):
        """
        Kill the process and everything it spawned, then wait for it.

        On POSIX mtr runs as a session leader, so its pid is also the
        process group id. Killing the group also takes down helpers that
        would otherwise hold the output pipes open past the timeout.
        """
        if os.name == 'posix':
            try:
                os.killpg(proc.pid, signal.SIGKILL)
            except (ProcessLookupError, PermissionError):
                # Group already empty (EPERM on some systems when only zombies remain)
                pass
        elif proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
