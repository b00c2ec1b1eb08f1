"""
Tests for the task orchestrator, end to end against the fake agent.
"""

import asyncio
import json

import pytest

from taskweave.core.context import TaskContext
from taskweave.core.formatting import get_final_output
from taskweave.core.orchestrator import TaskOrchestrator, build_chain_prompt
from taskweave.models.config import RunnerConfig, TaskweaveConfig
from taskweave.models.results import TaskStatus
from taskweave.models.tasks import ProviderModel, TaskMode, ThinkingLevel


def fresh(*prompts, **extra):
    return [{"prompt": prompt, "fork": False, **extra} for prompt in prompts]


@pytest.fixture
def spawn_counter(orchestrator, monkeypatch):
    """Counts runner invocations on the orchestrator fixture."""
    calls = []
    original = orchestrator.runner.run

    async def counting_run(execution, *args, **kwargs):
        calls.append(execution)
        return await original(execution, *args, **kwargs)

    monkeypatch.setattr(orchestrator.runner, "run", counting_run)
    return calls


async def wait_until(predicate, timeout=10.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class TestBuildChainPrompt:
    """Tests for {previous} substitution."""

    def test_replaces_every_occurrence(self):
        assert build_chain_prompt("{previous} and {previous}", "x") == "x and x"

    def test_no_placeholder(self):
        assert build_chain_prompt("plain", "x") == "plain"

    def test_empty_previous(self):
        assert build_chain_prompt("use: {previous}", "") == "use: "


class TestRejectedRequests:
    """Requests that fail before any subprocess starts."""

    async def test_validation_error_lists_skills(self, orchestrator, context, skills_dir, spawn_counter):
        response = await orchestrator.execute({"type": "single", "tasks": []}, context)

        assert response.is_error
        assert response.text == (
            'Invalid parameters: type="single" requires exactly one task in "tasks".\n'
            f"Available skills: review ({skills_dir}), summarize ({skills_dir})"
        )
        assert response.details.mode == TaskMode.SINGLE
        assert response.details.results == ()
        assert spawn_counter == []

    async def test_fork_without_session_spawns_nothing(self, orchestrator, tmp_path, spawn_counter):
        context = TaskContext(cwd=tmp_path)
        response = await orchestrator.execute(
            {"type": "parallel", "tasks": [{"prompt": "a", "fork": False}, {"prompt": "b"}]},
            context,
        )

        assert response.is_error
        assert "persisted session file" in response.text
        assert response.details.mode == TaskMode.PARALLEL
        assert spawn_counter == []

    async def test_missing_session_file_counts_as_absent(self, orchestrator, tmp_path, spawn_counter):
        context = TaskContext(cwd=tmp_path, session_file=tmp_path / "never-written.jsonl")
        response = await orchestrator.execute({"type": "single", "tasks": [{"prompt": "a"}]}, context)

        assert response.is_error
        assert spawn_counter == []

    async def test_unknown_skill(self, orchestrator, context, skills_dir, spawn_counter):
        response = await orchestrator.execute(
            {"type": "single", "tasks": [{"skill": "nope", "fork": False}]}, context
        )

        assert response.is_error
        assert response.text.startswith("Unknown skill: nope\nAvailable skills: review (")
        assert spawn_counter == []

    async def test_bad_model_format(self, orchestrator, context, spawn_counter):
        response = await orchestrator.execute(
            {"type": "parallel", "model": "acme", "tasks": fresh("a", "b")}, context
        )

        assert response.is_error
        assert response.text == 'Invalid model format: "acme". Expected provider/modelId.'
        assert spawn_counter == []

    async def test_unexpected_error_becomes_response(self, orchestrator, context, monkeypatch):
        async def broken_run(*args, **kwargs):
            raise RuntimeError("runner exploded")

        monkeypatch.setattr(orchestrator.runner, "run", broken_run)
        response = await orchestrator.execute({"type": "single", "tasks": fresh("a")}, context)

        assert response.is_error
        assert response.text == "Task execution failed: runner exploded"


class TestSingleMode:
    """Tests for single mode."""

    async def test_success(self, orchestrator, context):
        updates = []
        response = await orchestrator.execute(
            {"type": "single", "tasks": fresh("hello there")}, context, on_update=updates.append
        )

        assert not response.is_error
        assert response.text == "hello there"
        assert len(response.details.results) == 1
        result = response.details.results[0]
        assert result.index is None
        assert result.status == TaskStatus.DONE

        assert updates[0].text == "(running...)"
        assert updates[0].details.results[0].status == TaskStatus.RUNNING
        assert updates[-1].text == "hello there"

    async def test_failure(self, orchestrator, context):
        response = await orchestrator.execute({"type": "single", "tasks": fresh("@exit=4")}, context)

        assert response.is_error
        assert response.text == "Task failed: boom"
        assert response.details.results[0].exit_code == 4

    async def test_error_stop_reason(self, orchestrator, context):
        response = await orchestrator.execute({"type": "single", "tasks": fresh("@stop=error")}, context)
        assert response.is_error
        assert response.text == "Task failed: model exploded"

    async def test_skill_prompt_sent(self, orchestrator, context):
        response = await orchestrator.execute(
            {"type": "single", "tasks": [{"skill": "review", "prompt": "parser.py", "fork": False}]},
            context,
        )

        assert not response.is_error
        assert "Review the change carefully." in response.text
        assert response.text.endswith("---\n\nUser: parser.py")
        assert "metadata:" not in response.text
        assert response.details.results[0].skill == "review"
        assert response.details.results[0].prompt == "parser.py"

    async def test_resolved_arguments(self, orchestrator, tmp_path):
        context = TaskContext(
            cwd=tmp_path,
            session_model=ProviderModel(provider="host", model_id="m1"),
            active_tools=["read", "custom_tool"],
            inherited_thinking=ThinkingLevel.HIGH,
        )
        response = await orchestrator.execute({"type": "single", "tasks": fresh("@argv")}, context)

        args = json.loads(response.text)
        assert args == [
            "--mode", "json", "-p", "--no-session", "--no-extensions",
            "--provider", "host", "--model", "m1",
            "--thinking", "high",
            "--tools", "read",
        ]
        assert response.details.results[0].model == "host/m1"

    async def test_model_override_recorded(self, orchestrator, context):
        response = await orchestrator.execute(
            {"type": "single", "model": "acme/big", "thinking": "off", "tasks": fresh("@argv")}, context
        )

        assert response.details.model_override == "acme/big"
        args = json.loads(response.text)
        assert args[args.index("--provider") + 1] == "acme"
        assert args[args.index("--thinking") + 1] == "off"
        assert response.details.results[0].thinking == "off"

    async def test_forked_task(self, orchestrator, context, session_file):
        response = await orchestrator.execute(
            {"type": "single", "tasks": [{"prompt": "@session"}]}, context
        )

        reply = json.loads(response.text)
        assert reply["content"] == session_file.read_text(encoding="utf-8")
        assert response.details.results[0].fork is True


class TestChainMode:
    """Tests for chain mode."""

    async def test_substitutes_previous_output(self, orchestrator, context):
        response = await orchestrator.execute(
            {"type": "chain", "tasks": fresh("first", "got [{previous}]", "then <{previous}>")},
            context,
        )

        assert not response.is_error
        assert response.text == "then <got [first]>"
        results = response.details.results
        assert [result.index for result in results] == [1, 2, 3]
        assert results[1].prompt == "got [first]"

    async def test_stops_at_failed_step(self, orchestrator, context, spawn_counter):
        response = await orchestrator.execute(
            {"type": "chain", "tasks": fresh("one", "@exit=2 {previous}", "three {previous}")},
            context,
        )

        assert response.is_error
        assert response.text == "Chain stopped at step 2: boom"
        statuses = [result.status for result in response.details.results]
        assert statuses == [TaskStatus.DONE, TaskStatus.FAILED]
        assert response.details.results[1].prompt == "@exit=2 one"
        assert len(spawn_counter) == 2

    async def test_progress_updates(self, orchestrator, context):
        updates = []
        await orchestrator.execute(
            {"type": "chain", "tasks": fresh("a", "b {previous}")}, context, on_update=updates.append
        )

        first = [result.status for result in updates[0].details.results]
        assert first == [TaskStatus.RUNNING, TaskStatus.PENDING]
        assert updates[0].details.results[1].prompt == "b …"
        assert all(update.details.mode == TaskMode.CHAIN for update in updates)
        assert not any(update.is_error for update in updates)

    async def test_resolution_error_mid_chain(self, orchestrator, context, spawn_counter):
        response = await orchestrator.execute(
            {"type": "chain", "tasks": [*fresh("one"), {"skill": "missing", "fork": False}]},
            context,
        )

        assert response.is_error
        assert response.text.startswith("Unknown skill: missing")
        assert len(spawn_counter) == 1
        assert response.details.results[0].status == TaskStatus.DONE
        assert len(response.details.results) == 1


class TestParallelMode:
    """Tests for parallel mode."""

    async def test_summary(self, orchestrator, context):
        response = await orchestrator.execute({"type": "parallel", "tasks": fresh("a", "b", "c")}, context)

        assert not response.is_error
        assert response.text == (
            "Parallel: 3/3 succeeded\n\n"
            "[task 1] completed: a\n\n"
            "[task 2] completed: b\n\n"
            "[task 3] completed: c"
        )
        assert [result.index for result in response.details.results] == [1, 2, 3]

    async def test_partial_failure_is_not_error(self, orchestrator, context):
        response = await orchestrator.execute(
            {"type": "parallel", "tasks": fresh("fine", "@exit=1")}, context
        )

        assert not response.is_error
        assert response.text.startswith("Parallel: 1/2 succeeded")
        assert "[task 2] failed: @exit=1" in response.text

    async def test_all_failed_is_error(self, orchestrator, context):
        response = await orchestrator.execute(
            {"type": "parallel", "tasks": fresh("@exit=1", "@stop=error")}, context
        )
        assert response.is_error
        assert response.text.startswith("Parallel: 0/2 succeeded")

    async def test_aggregate_usage(self, orchestrator, context):
        response = await orchestrator.execute({"type": "parallel", "tasks": fresh("a", "b", "c")}, context)

        usage = response.details.total_usage
        assert usage.turns == 3
        assert usage.input == 30
        assert usage.output == 15
        assert usage.cost == pytest.approx(0.003)

    async def test_running_bounded_by_concurrency(self, agent_command, context):
        config = TaskweaveConfig(
            runner=RunnerConfig(command=agent_command, kill_grace_seconds=1.0, max_concurrency=2)
        )
        orchestrator = TaskOrchestrator(config)
        updates = []

        response = await orchestrator.execute(
            {"type": "parallel", "tasks": fresh(*(f"@sleep=0.2 t{i}" for i in range(5)))},
            context,
            on_update=updates.append,
        )

        assert not response.is_error
        first = [result.status for result in updates[0].details.results]
        assert first == [TaskStatus.PENDING] * 5
        peak = max(
            sum(1 for result in update.details.results if result.is_running) for update in updates
        )
        assert peak == 2
        assert updates[0].text == "Parallel: 0/5 done, 0 running..."

    async def test_abort_with_tasks_running(self, orchestrator, context):
        abort = asyncio.Event()
        latest = []

        task = asyncio.create_task(
            orchestrator.execute(
                {"type": "parallel", "tasks": fresh("quick a", "quick b", "@sleep=30 c", "@sleep=30 d")},
                context,
                abort=abort,
                on_update=latest.append,
            )
        )

        def two_done_two_streaming():
            if not latest:
                return False
            results = latest[-1].details.results
            return (
                all(result.status == TaskStatus.DONE for result in results[:2])
                and all(result.is_running and result.messages for result in results[2:])
            )

        await wait_until(two_done_two_streaming)
        abort.set()
        response = await asyncio.wait_for(task, timeout=10)

        results = response.details.results
        assert [result.status for result in results] == [
            TaskStatus.DONE, TaskStatus.DONE, TaskStatus.FAILED, TaskStatus.FAILED,
        ]
        assert not any(result.was_aborted for result in results[:2])
        assert all(result.was_aborted for result in results[2:])
        assert get_final_output(results[0].messages) == "quick a"
        assert response.text.startswith("Parallel: 2/4 succeeded")
        assert not response.is_error

    async def test_callback_error_keeps_finished_results(self, orchestrator, context):
        def on_update(response):
            if any(result.status == TaskStatus.DONE for result in response.details.results):
                raise RuntimeError("display failed")

        response = await asyncio.wait_for(
            orchestrator.execute(
                {"type": "parallel", "tasks": fresh("quick", "@sleep=5 slow")}, context, on_update=on_update
            ),
            timeout=10,
        )

        assert response.is_error
        assert response.text == "Task execution failed: display failed"
        first = response.details.results[0]
        assert first.index == 1
        assert first.status == TaskStatus.DONE
        assert get_final_output(first.messages) == "quick"
        assert not any(result.is_pending for result in response.details.results)
