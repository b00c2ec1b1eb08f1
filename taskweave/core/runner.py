"""
Subprocess task runner.

Runs one prepared execution as an isolated agent subprocess, parses its
JSON event stream as it arrives, and reports immutable ``SingleResult``
snapshots to a callback after every accepted event.

Termination on abort escalates from SIGTERM to SIGKILL after a grace window.
"""

from __future__ import annotations

import asyncio
import codecs
from pathlib import Path
from typing import Callable, Sequence

from taskweave.core.errors import ForkPrerequisiteError, SubprocessSpawnError
from taskweave.core.fork import DEFAULT_TEMP_PREFIX, apply_fork_session_args, fork_session
from taskweave.core.stream import LineBuffer, parse_json_line
from taskweave.models.config import RunnerConfig
from taskweave.models.events import AgentMessage, IgnoredEvent, decode_event
from taskweave.models.results import (
    EXIT_RUNNING,
    FAILURE_STOP_REASONS,
    STOP_ABORTED,
    SingleResult,
    UsageStats,
)
from taskweave.models.tasks import PreparedExecution
from taskweave.utils.logger import get_logger


logger = get_logger(__name__)

ResultCallback = Callable[[SingleResult], None]

READ_CHUNK_SIZE = 64 * 1024
DEFAULT_COMMAND: tuple[str, ...] = ("pi",)


class _ResultRecorder:
    """Mutable state for one task, owned by a single runner coroutine."""

    def __init__(self, execution: PreparedExecution, index: int | None):
        item = execution.item
        self.prompt = item.prompt
        self.skill = item.skill
        self.index = index
        self.fork = item.fork
        self.model = execution.config.model_label
        self.thinking = execution.config.thinking_level.value
        self.exit_code = EXIT_RUNNING
        self.messages: list[AgentMessage] = []
        self.stderr = ""
        self.usage = UsageStats()
        self.stop_reason: str | None = None
        self.error_message: str | None = None

    def apply(self, message: AgentMessage) -> None:
        self.messages.append(message)
        if not message.is_assistant:
            return

        self.usage = self.usage.add_message(message.usage)
        if not self.model and message.model:
            self.model = message.model
        # a failure reason is never overwritten by a later one
        if message.stop_reason and self.stop_reason not in FAILURE_STOP_REASONS:
            self.stop_reason = message.stop_reason
        if message.error_message and not self.error_message:
            self.error_message = message.error_message

    def fail(self, message: str, exit_code: int = 1) -> None:
        self.exit_code = exit_code
        if not self.error_message:
            self.error_message = message

    def snapshot(self) -> SingleResult:
        return SingleResult(
            prompt=self.prompt,
            skill=self.skill,
            index=self.index,
            exit_code=self.exit_code,
            messages=tuple(self.messages),
            stderr=self.stderr,
            usage=self.usage,
            model=self.model,
            thinking=self.thinking,
            fork=self.fork,
            stop_reason=self.stop_reason,
            error_message=self.error_message,
        )


def normalize_exit_code(returncode: int | None) -> int:
    """Map a signal death (negative returncode) to 128 + signal number."""
    if returncode is None:
        return 0
    if returncode < 0:
        return 128 - returncode
    return returncode


class TaskRunner:
    """
    Runs agent subprocesses.

    Example:
        >>> runner = TaskRunner(command=["pi"])
        >>> result = await runner.run(execution, cwd=".", abort=abort_event)
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_COMMAND,
        kill_grace_seconds: float = 5.0,
        temp_prefix: str = DEFAULT_TEMP_PREFIX,
    ):
        """
        Initialize the runner.

        Args:
            command: Agent executable plus any fixed leading arguments
            kill_grace_seconds: Seconds between SIGTERM and SIGKILL on abort
            temp_prefix: Prefix for fork session directories
        """
        self.command = list(command)
        self.kill_grace_seconds = kill_grace_seconds
        self.temp_prefix = temp_prefix

    @classmethod
    def from_config(cls, config: RunnerConfig) -> "TaskRunner":
        return cls(
            command=config.command,
            kill_grace_seconds=config.kill_grace_seconds,
            temp_prefix=config.temp_prefix,
        )

    async def run(
        self,
        execution: PreparedExecution,
        cwd: str | Path,
        index: int | None = None,
        session_file: str | Path | None = None,
        abort: asyncio.Event | None = None,
        on_update: ResultCallback | None = None,
    ) -> SingleResult:
        """
        Run one execution to completion.

        Subprocess failures (spawn errors, nonzero exits, error stop reasons,
        aborts) are recorded in the returned result rather than raised.

        Args:
            execution: Prepared item, prompt and resolved configuration
            cwd: Working directory for the subprocess
            index: 1-based position of the task in its call, if any
            session_file: Conversation log to fork from when the item forks
            abort: Shared abort signal for the top-level call
            on_update: Receives a snapshot after every accepted event

        Returns:
            Final SingleResult

        Raises:
            asyncio.CancelledError: After the subprocess has been terminated
        """
        recorder = _ResultRecorder(execution, index)

        try:
            async with fork_session(session_file, execution.item.fork, self.temp_prefix) as session:
                args = apply_fork_session_args(execution.config.subprocess_args, session)
                argv = [*self.command, *args, execution.subprocess_prompt]
                await self._execute(argv, cwd, recorder, abort, on_update)
        except (ForkPrerequisiteError, SubprocessSpawnError) as e:
            recorder.fail(e.message)
        except OSError as e:
            recorder.fail(str(e))

        return recorder.snapshot()

    async def _execute(
        self,
        argv: list[str],
        cwd: str | Path,
        recorder: _ResultRecorder,
        abort: asyncio.Event | None,
        on_update: ResultCallback | None,
    ) -> None:
        label = f"task {recorder.index}" if recorder.index else "task"
        logger.debug(f"Spawning {argv[0]} for {label} in {cwd}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.warning(f"Could not start {argv[0]}: {e}")
            raise SubprocessSpawnError(f"Failed to start {argv[0]}: {e}", argv[0]) from e

        aborted = False

        async def watch_abort() -> None:
            nonlocal aborted
            await abort.wait()
            if proc.returncode is not None:
                return
            aborted = True
            logger.info(f"Abort requested, terminating {label} (pid {proc.pid})")
            await self._terminate(proc)

        watcher = asyncio.create_task(watch_abort()) if abort is not None else None
        stderr_reader = asyncio.create_task(self._read_stderr(proc, recorder))

        try:
            await self._read_stdout(proc, recorder, on_update)
            await stderr_reader
            returncode = await proc.wait()
        finally:
            if watcher is not None:
                watcher.cancel()
            if proc.returncode is None:
                logger.info(f"Terminating {label} (pid {proc.pid}) after interruption")
                await self._terminate(proc)
            if not stderr_reader.done():
                stderr_reader.cancel()

        recorder.exit_code = normalize_exit_code(returncode)
        if aborted:
            recorder.stop_reason = STOP_ABORTED
        logger.debug(f"{label} exited with code {recorder.exit_code}")

    async def _read_stdout(
        self,
        proc: asyncio.subprocess.Process,
        recorder: _ResultRecorder,
        on_update: ResultCallback | None,
    ) -> None:
        buffer = LineBuffer()

        def handle(line: str) -> None:
            raw = parse_json_line(line)
            if raw is None:
                return
            event = decode_event(raw)
            if isinstance(event, IgnoredEvent):
                return
            recorder.apply(event.message)
            if on_update is not None:
                on_update(recorder.snapshot())

        while True:
            chunk = await proc.stdout.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            for line in buffer.feed(chunk):
                handle(line)

        trailing = buffer.flush()
        if trailing is not None:
            handle(trailing)

    async def _read_stderr(self, proc: asyncio.subprocess.Process, recorder: _ResultRecorder) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            chunk = await proc.stderr.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            recorder.stderr += decoder.decode(chunk)
        recorder.stderr += decoder.decode(b"", final=True)

    async def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        """SIGTERM, then SIGKILL if still alive after the grace window. No-op once exited."""
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(proc.wait(), timeout=self.kill_grace_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Process {proc.pid} ignored SIGTERM, sending SIGKILL")
            try:
                proc.kill()
            except ProcessLookupError:
                return
            await proc.wait()
