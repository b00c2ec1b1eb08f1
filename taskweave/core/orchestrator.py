"""
Task orchestrator.

Executes a top-level request in one of three modes:
- single: one task
- chain: sequential tasks, each step may reference the previous output
- parallel: independent tasks with bounded concurrency

Every outcome, including validation failures, becomes a ``TaskResponse``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

from taskweave.core.context import TaskContext
from taskweave.core.errors import (
    ForkPrerequisiteError,
    SubprocessRuntimeError,
    TaskweaveError,
    ValidationError,
)
from taskweave.core.formatting import (
    NO_OUTPUT,
    RUNNING_OUTPUT,
    check_result,
    format_parallel_summary,
    get_final_output,
)
from taskweave.core.params import normalize_task_params
from taskweave.core.resolver import get_built_in_tools, resolve_task_config
from taskweave.core.runner import TaskRunner
from taskweave.core.scheduler import map_with_concurrency_limit
from taskweave.core.skills import (
    SkillPromptState,
    build_subprocess_prompt,
    format_available_skills,
)
from taskweave.models.config import TaskweaveConfig
from taskweave.models.results import (
    EXIT_PENDING,
    EXIT_RUNNING,
    SingleResult,
    TaskResponse,
    TaskToolDetails,
)
from taskweave.models.tasks import (
    NormalizedParams,
    PreparedExecution,
    TaskMode,
    TaskWorkItem,
)
from taskweave.utils.logger import get_logger


logger = get_logger(__name__)

UpdateCallback = Callable[[TaskResponse], None]

PREVIOUS_PLACEHOLDER = "{previous}"
PENDING_PREVIOUS = "…"


def build_chain_prompt(prompt: str, previous_output: str) -> str:
    """Replace every ``{previous}`` with the prior step's output."""
    return prompt.replace(PREVIOUS_PLACEHOLDER, previous_output)


def placeholder_result(
    execution: PreparedExecution | None,
    item: TaskWorkItem,
    index: int | None,
    exit_code: int = EXIT_RUNNING,
) -> SingleResult:
    """A result for a task that has not produced output yet."""
    config = execution.config if execution else None
    return SingleResult(
        prompt=item.prompt,
        skill=item.skill,
        index=index,
        exit_code=exit_code,
        model=config.model_label if config else None,
        thinking=config.thinking_level.value if config else None,
        fork=item.fork,
    )


class _CallState:
    """Resolution inputs shared by every task of one call."""

    def __init__(self, params: NormalizedParams, context: TaskContext, config: TaskweaveConfig):
        self.params = params
        self.context = context
        self.config = config
        self.skills = SkillPromptState(context.load_skills())
        self.built_in_tools = get_built_in_tools(context.active_tools)
        # Latest snapshot per task, kept for error responses.
        self.results: list[SingleResult] = []

    def prepare(self, item: TaskWorkItem) -> PreparedExecution:
        """Build the subprocess prompt and resolve config; raises on the first problem."""
        prompt = build_subprocess_prompt(item, self.skills, self.config.display.skill_list_limit)
        resolved = resolve_task_config(
            item,
            default_model=self.params.model,
            default_thinking=self.params.thinking,
            inherited_thinking=self.context.inherited_thinking,
            session_model=self.context.session_model,
            built_in_tools=self.built_in_tools,
        )
        return PreparedExecution(item=item, subprocess_prompt=prompt, config=resolved)

    def details(self, results: list[SingleResult] | tuple[SingleResult, ...]) -> TaskToolDetails:
        return TaskToolDetails(
            mode=self.params.mode,
            model_override=self.params.model,
            results=tuple(results),
        )

    def started_results(self) -> list[SingleResult]:
        return [result for result in self.results if not result.is_pending]


class TaskOrchestrator:
    """
    Runs task requests against an agent executable.

    Example:
        >>> orchestrator = TaskOrchestrator(config)
        >>> response = await orchestrator.execute(request, context)
        >>> print(response.text)
    """

    def __init__(self, config: TaskweaveConfig | None = None, runner: TaskRunner | None = None):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration (defaults apply when omitted)
            runner: Subprocess runner (built from ``config.runner`` when omitted)
        """
        self.config = config or TaskweaveConfig()
        self.runner = runner or TaskRunner.from_config(self.config.runner)

    async def execute(
        self,
        params: Any,
        context: TaskContext,
        abort: asyncio.Event | None = None,
        on_update: UpdateCallback | None = None,
    ) -> TaskResponse:
        """
        Execute a raw request.

        Args:
            params: Untyped request ``{type, tasks, model?, thinking?}``
            context: Host collaborators
            abort: Shared abort signal; setting it terminates running tasks
            on_update: Receives progress responses while tasks run

        Returns:
            Final TaskResponse. Only ``asyncio.CancelledError`` propagates.
        """
        try:
            normalized = normalize_task_params(params, self.config.runner.max_parallel_tasks)
        except ValidationError as e:
            logger.info(f"Rejected request: {e.message}")
            available = format_available_skills(
                context.load_skills(), self.config.display.skill_list_limit
            )
            return TaskResponse(
                text=f"{e.message}\nAvailable skills: {available}",
                details=TaskToolDetails(mode=TaskMode.SINGLE),
                is_error=True,
            )

        state = _CallState(normalized, context, self.config)

        session_file = None
        if normalized.requires_fork:
            session_file = context.get_session_file()
            if session_file is None:
                error = ForkPrerequisiteError()
                logger.info(f"Rejected request: {error.message}")
                return TaskResponse(text=error.message, details=state.details([]), is_error=True)

        logger.info(f"Starting {normalized.mode.value} call with {len(normalized.items)} task(s)")
        if abort is None:
            abort = asyncio.Event()

        try:
            if normalized.mode == TaskMode.SINGLE:
                response = await self.run_single(state, session_file, abort, on_update)
            elif normalized.mode == TaskMode.CHAIN:
                response = await self.run_chain(state, session_file, abort, on_update)
            else:
                response = await self.run_parallel(state, session_file, abort, on_update)
        except Exception as e:
            logger.exception(f"Error during {normalized.mode.value} call: {e}")
            return TaskResponse(
                text=f"Task execution failed: {e}",
                details=state.details(state.started_results()),
                is_error=True,
            )

        logger.info(
            f"Finished {normalized.mode.value} call"
            f"{' with errors' if response.is_error else ''}"
        )
        return response

    async def run_single(
        self,
        state: _CallState,
        session_file: Path | None,
        abort: asyncio.Event,
        on_update: UpdateCallback | None,
    ) -> TaskResponse:
        item = state.params.items[0]
        try:
            execution = state.prepare(item)
        except TaskweaveError as e:
            logger.info(f"Task not started: {e.message}")
            return TaskResponse(text=e.message, details=state.details([]), is_error=True)

        def emit(result: SingleResult) -> None:
            state.results = [result]
            if on_update is not None:
                on_update(TaskResponse(
                    text=get_final_output(result.messages) or RUNNING_OUTPUT,
                    details=state.details([result]),
                ))

        emit(placeholder_result(execution, item, None))

        result = await self.runner.run(
            execution,
            cwd=state.context.cwd,
            session_file=session_file,
            abort=abort,
            on_update=emit,
        )

        try:
            check_result(result)
        except SubprocessRuntimeError as e:
            return TaskResponse(
                text=f"Task failed: {e.message}",
                details=state.details([result]),
                is_error=True,
            )

        return TaskResponse(
            text=get_final_output(result.messages) or NO_OUTPUT,
            details=state.details([result]),
        )

    async def run_chain(
        self,
        state: _CallState,
        session_file: Path | None,
        abort: asyncio.Event,
        on_update: UpdateCallback | None,
    ) -> TaskResponse:
        items = state.params.items
        results = [
            placeholder_result(
                None,
                item.with_prompt(build_chain_prompt(item.prompt, PENDING_PREVIOUS)),
                index + 1,
                EXIT_PENDING,
            )
            for index, item in enumerate(items)
        ]
        state.results = results

        def emit(text: str) -> None:
            if on_update is not None:
                on_update(TaskResponse(text=text, details=state.details(results)))

        previous_output = ""
        for index, item in enumerate(items):
            step_item = item.with_prompt(build_chain_prompt(item.prompt, previous_output))
            try:
                execution = state.prepare(step_item)
            except TaskweaveError as e:
                logger.info(f"Chain step {index + 1} not started: {e.message}")
                return TaskResponse(text=e.message, details=state.details(results[:index]), is_error=True)

            results[index] = placeholder_result(execution, step_item, index + 1)
            emit(RUNNING_OUTPUT)

            def on_step_update(partial: SingleResult, index: int = index) -> None:
                results[index] = partial
                emit(get_final_output(partial.messages) or RUNNING_OUTPUT)

            result = await self.runner.run(
                execution,
                cwd=state.context.cwd,
                index=index + 1,
                session_file=session_file,
                abort=abort,
                on_update=on_step_update,
            )
            results[index] = result
            emit(get_final_output(result.messages) or NO_OUTPUT)

            try:
                check_result(result)
            except SubprocessRuntimeError as e:
                logger.info(f"Chain stopped at step {index + 1}")
                return TaskResponse(
                    text=f"Chain stopped at step {index + 1}: {e.message}",
                    details=state.details(results[:index + 1]),
                    is_error=True,
                )

            previous_output = get_final_output(result.messages)

        return TaskResponse(
            text=get_final_output(results[-1].messages) or NO_OUTPUT,
            details=state.details(results),
        )

    async def run_parallel(
        self,
        state: _CallState,
        session_file: Path | None,
        abort: asyncio.Event,
        on_update: UpdateCallback | None,
    ) -> TaskResponse:
        items = state.params.items
        try:
            executions = [state.prepare(item) for item in items]
        except TaskweaveError as e:
            logger.info(f"Parallel call not started: {e.message}")
            return TaskResponse(text=e.message, details=state.details([]), is_error=True)

        results = [
            placeholder_result(execution, execution.item, index + 1, EXIT_PENDING)
            for index, execution in enumerate(executions)
        ]
        state.results = results

        def emit() -> None:
            if on_update is None:
                return
            running = sum(1 for result in results if result.is_running)
            done = sum(1 for result in results if result.status.is_finished)
            on_update(TaskResponse(
                text=f"Parallel: {done}/{len(results)} done, {running} running...",
                details=state.details(results),
            ))

        emit()

        async def run_one(execution: PreparedExecution, index: int) -> SingleResult:
            results[index] = results[index].model_copy(update={"exit_code": EXIT_RUNNING})
            emit()

            def on_task_update(partial: SingleResult) -> None:
                results[index] = partial
                emit()

            result = await self.runner.run(
                execution,
                cwd=state.context.cwd,
                index=index + 1,
                session_file=session_file,
                abort=abort,
                on_update=on_task_update,
            )
            results[index] = result
            emit()
            return result

        final = await map_with_concurrency_limit(
            executions, self.config.runner.max_concurrency, run_one
        )

        return TaskResponse(
            text=format_parallel_summary(final, self.config.display.preview_length),
            details=state.details(final),
            is_error=all(result.is_error for result in final),
        )
