"""
Sensor process runner.

Starts the hand-tracking process, reads its newline-delimited JSON output
and hands each line to the router before reading the next one.
"""

import asyncio
import logging
from typing import Callable, List, Optional

from .config import Config

logger = logging.getLogger(__name__)

STREAM_LIMIT = 1024 * 1024


def args_from_config(cfg: Config) -> List[str]:
    """Return the sensor process arguments for the tracking settings."""
    return [
        "--frame-skip", f"{cfg.tracking.frame_skip}",
        "--buffer-size", f"{cfg.tracking.buffer_size}",
        "--gesture-threshold", f"{cfg.tracking.gesture_threshold:.1f}",
    ]


class SensorRunner:
    """
    Runs the sensor process and feeds its output to a line handler.

    Lines are handled synchronously on the event loop, so a line is fully
    processed (including every send) before the next one is read.
    """

    def __init__(
        self,
        executable: str,
        args: List[str],
        on_line: Callable[[str], None],
        grace_period_s: float = 2.0,
    ):
        """
        Initialize sensor runner.

        Args:
            executable: Sensor program to start
            args: Program arguments
            on_line: Called with each decoded output line
            grace_period_s: Time allowed to exit after SIGTERM before SIGKILL
        """
        self.executable = executable
        self.args = args
        self.on_line = on_line
        self.grace_period_s = grace_period_s

        self._process: Optional[asyncio.subprocess.Process] = None
        self._lines_read = 0

    async def run(self) -> int:
        """
        Start the process and consume its stdout until EOF.

        Returns:
            Process exit code
        """
        logger.info(f"Starting sensor: {self.executable} {' '.join(self.args)}")
        self._process = await asyncio.create_subprocess_exec(
            self.executable,
            *self.args,
            stdout=asyncio.subprocess.PIPE,
            limit=STREAM_LIMIT,
        )
        await self.consume(self._process.stdout)

        code = await self._process.wait()
        logger.info(f"Sensor exited with code {code}")
        return code

    async def consume(self, stream: asyncio.StreamReader) -> None:
        """Read lines from a stream and pass each one to the handler."""
        while True:
            try:
                raw = await stream.readline()
            except ValueError as e:
                logger.warning(f"Dropping oversized sensor line: {e}")
                continue
            if not raw:
                break
            self._lines_read += 1
            self.on_line(raw.decode("utf-8", errors="replace"))

    async def stop(self) -> None:
        """Terminate the process, killing it if it outlives the grace period."""
        proc = self._process
        if proc is None or proc.returncode is not None:
            return

        logger.info("Terminating sensor")
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=self.grace_period_s)
        except asyncio.TimeoutError:
            logger.info("Force killing sensor")
            proc.kill()
            await proc.wait()

    def get_stats(self) -> dict:
        return {
            "running": self._process is not None and self._process.returncode is None,
            "lines_read": self._lines_read,
        }
