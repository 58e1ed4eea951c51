"""Supervised child process for long-running scripts.

A ScriptRunner owns at most one child. ``run()`` starts it and returns a
future that resolves when the child has exited for any reason (including a
failed start). ``successful()``, ``exit_code()`` and ``stop()`` may be called in
any order, before start or after exit.

Use it as an async context manager so the child is stopped on every exit path:

    async with ScriptRunner(config) as runner:
        await runner.run()
        if not runner.successful():
            ...
"""

import asyncio
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from bundlegen.errors import ProcessStopError
from bundlegen.utils.logging import logger

# Exit code reported when the child could not be spawned at all
START_FAILED_EXIT_CODE = -1

# Bytes read from a child pipe at a time
PIPE_CHUNK_SIZE = 64 * 1024

# A partial line longer than this is logged without waiting for its newline
MAX_LINE_BYTES = 1024 * 1024


class RunnerState(Enum):
    """Lifecycle of the supervised child."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ScriptRunnerConfig:
    """How to launch the child."""

    name: str
    executable: str
    script_args: tuple[str, ...] = ()
    abs_working_dir: Path = Path(".")
    script_env: dict[str, str] = field(default_factory=dict)
    inherit_env: bool = True
    stop_grace: float = 5.0


class ScriptRunner:
    """Run one script as a supervised child process."""

    def __init__(self, config: ScriptRunnerConfig):
        self.config = config
        self.state = RunnerState.NOT_STARTED
        self._process: asyncio.subprocess.Process | None = None
        self._done: asyncio.Future | None = None
        self._supervisor: asyncio.Task | None = None
        self._exit_code: int | None = None
        self._started_at: float | None = None
        self._log = logger.bind(runnerName=config.name)

    @property
    def name(self) -> str:
        return self.config.name

    def build_env(self) -> dict[str, str]:
        env = dict(os.environ) if self.config.inherit_env else {}
        env.update(self.config.script_env)
        return env

    def run(self) -> asyncio.Future:
        """Start the child and return its completion future.

        Calling ``run`` again returns the same future; the child is only ever
        started once.
        """
        if self._done is not None:
            return self._done

        loop = asyncio.get_running_loop()
        self._done = loop.create_future()
        if self.state is RunnerState.STOPPED:
            self._done.set_result(None)
            return self._done

        self.state = RunnerState.RUNNING
        self._started_at = time.time()
        self._supervisor = loop.create_task(self._supervise(), name=f"{self.name}-supervisor")
        self._supervisor.add_done_callback(self._on_supervisor_done)
        return self._done

    def _on_supervisor_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return
        self._log.opt(exception=error).error(f"Supervising {self.name} failed: {error!r}")
        process = self._process
        if process is not None and process.returncode is not None:
            self._finish(process.returncode)
        else:
            self._finish(START_FAILED_EXIT_CODE)

    async def _supervise(self) -> None:
        cmd = [self.config.executable, *self.config.script_args]
        self._log.debug(f"Starting {self.name}: {' '.join(cmd)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.config.abs_working_dir),
                env=self.build_env(),
            )
        except OSError as e:
            self._log.error(f"Could not start {self.name}: {e}")
            self._finish(START_FAILED_EXIT_CODE)
            return

        try:
            outcomes = await asyncio.gather(
                self._pump(self._process.stdout, is_error=False),
                self._pump(self._process.stderr, is_error=True),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    self._log.error(f"Lost output of {self.name}: {outcome!r}")
            returncode = await self._process.wait()
        finally:
            if self._process.returncode is not None:
                self._finish(self._process.returncode)

        elapsed = time.time() - (self._started_at or time.time())
        self._log.debug(f"{self.name} exited with code {returncode} ({elapsed:.1f}s)")

    async def _pump(self, stream: asyncio.StreamReader | None, is_error: bool) -> None:
        """Log ``stream`` line by line until EOF.

        Reads fixed-size chunks so a single huge line can never stall the pipe.
        """
        if stream is None:
            return
        pending = b""
        while True:
            chunk = await stream.read(PIPE_CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk
            *lines, pending = pending.split(b"\n")
            for line in lines:
                self._emit(line, is_error)
            if len(pending) > MAX_LINE_BYTES:
                self._emit(pending, is_error)
                pending = b""
        if pending:
            self._emit(pending, is_error)

    def _emit(self, line: bytes, is_error: bool) -> None:
        text = line.decode("utf-8", errors="replace").rstrip()
        if not text:
            return
        if is_error:
            self._log.warning(text)
        else:
            self._log.info(text)

    def _finish(self, exit_code: int) -> None:
        self._exit_code = exit_code
        if self.state is RunnerState.RUNNING:
            self.state = RunnerState.COMPLETED
        if self._done is not None and not self._done.done():
            self._done.set_result(None)

    def successful(self) -> bool:
        """True only if the child ran and exited with code 0."""
        return self._exit_code == 0

    def exit_code(self) -> int:
        """Exit code of the child, or -1 while it has not exited."""
        if self._exit_code is None:
            return START_FAILED_EXIT_CODE
        return self._exit_code

    async def stop(self) -> None:
        """Terminate the child if it is still running.

        Idempotent and safe before ``run``. Sends SIGTERM, waits up to
        ``stop_grace`` seconds, then kills.

        Raises:
            ProcessStopError: the child could not be signalled
        """
        if self.state is RunnerState.STOPPED:
            return

        process = self._process
        try:
            if process is not None and process.returncode is None:
                self._log.debug(f"Stopping {self.name}")
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=self.config.stop_grace)
                except TimeoutError:
                    self._log.warning(
                        f"{self.name} did not exit within {self.config.stop_grace}s, killing"
                    )
                    process.kill()
                    await process.wait()
        except ProcessLookupError:
            # Exited between the returncode check and the signal
            pass
        except OSError as e:
            raise ProcessStopError(f"could not stop {self.name}: {e}") from e
        finally:
            await self._cancel_supervisor()
            self.state = RunnerState.STOPPED
            if self._done is not None and not self._done.done():
                self._done.set_result(None)

    async def _cancel_supervisor(self) -> None:
        task = self._supervisor
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def __aenter__(self) -> "ScriptRunner":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await self.stop()
        except ProcessStopError as e:
            self._log.error(f"Stopping runner failed: {e}")
