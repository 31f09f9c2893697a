"""Tests for running a submission against a topic's test cases."""

import asyncio

import pytest

from codenest.execution.piston import ExecutionResult, ExecutionServiceUnavailableError, ExecutionTimeoutError
from codenest.progress.database import update_progress
from codenest.progress.errors import EmptyCodeError, NoTestCasesError
from codenest.progress.models import ErrorKind, Topic, TopicTestCase
from codenest.progress.orchestrator import on_submission
from codenest.progress.verifier import outputs_match, run_test_suite

from conftest import ScriptedExecutor, python_topic

CASES = [
    TopicTestCase(input="1", expected_output="365"),
    TopicTestCase(input="5", expected_output="1825"),
    TopicTestCase(input="10", expected_output="3650\n"),
]


def days_in_years(code, language, stdin):
    return ExecutionResult(stdout=f"{int(stdin) * 365}\n")


def run(executor, code="print(int(input()) * 365)", cases=CASES):
    return asyncio.run(run_test_suite(executor, code, "python", cases))


class TestOutputNormalization:
    def test_trailing_newline_ignored(self):
        assert outputs_match("5", "5\n") is True

    def test_surrounding_whitespace_ignored(self):
        assert outputs_match("  5 \n", "5") is True

    def test_different_values_fail(self):
        assert outputs_match("6", "5") is False

    def test_no_numeric_tolerance(self):
        assert outputs_match("5.0", "5") is False


class TestRunTestSuite:
    def test_all_cases_pass(self):
        executor = ScriptedExecutor(days_in_years)
        result = run(executor)
        assert result.all_passed is True
        assert result.passed_count == 3
        assert [r.case_index for r in result.results] == [1, 2, 3]
        assert result.executed is True

    def test_cases_run_in_order_with_case_input_as_stdin(self):
        executor = ScriptedExecutor(days_in_years)
        run(executor)
        assert [stdin for _, _, stdin in executor.calls] == ["1", "5", "10"]

    def test_failure_does_not_short_circuit(self):
        def wrong_first(code, language, stdin):
            if stdin == "1":
                return ExecutionResult(stdout="0")
            return days_in_years(code, language, stdin)

        executor = ScriptedExecutor(wrong_first)
        result = run(executor)
        assert result.total == 3
        assert [r.passed for r in result.results] == [False, True, True]
        assert result.all_passed is False
        assert result.results[0].actual_output == "0"
        assert len(executor.calls) == 3

    def test_runtime_error_fails_case_with_error_message(self):
        def crash(code, language, stdin):
            return ExecutionResult(stderr="ZeroDivisionError: division by zero", error_kind=ErrorKind.RUNTIME_ERROR)

        result = run(ScriptedExecutor(crash))
        assert result.all_passed is False
        assert result.executed is True
        first = result.results[0]
        assert first.passed is False
        assert first.error_kind == ErrorKind.RUNTIME_ERROR
        assert first.actual_output.startswith("Runtime Error:")

    def test_service_failure_recorded_per_case(self):
        def flaky(code, language, stdin):
            if stdin == "5":
                raise ExecutionTimeoutError("Code execution timed out")
            return days_in_years(code, language, stdin)

        result = run(ScriptedExecutor(flaky))
        assert [r.passed for r in result.results] == [True, False, True]
        assert result.results[1].actual_output == "Code execution timed out"
        assert result.results[1].error_kind == ErrorKind.SERVICE_ERROR

    def test_sandbox_down_for_every_case(self):
        def down(code, language, stdin):
            raise ExecutionServiceUnavailableError("Execution service unreachable")

        result = run(ScriptedExecutor(down))
        assert result.total == 3
        assert result.executed is False
        assert result.all_passed is False

    def test_empty_code_fails_before_any_call(self):
        executor = ScriptedExecutor(days_in_years)
        with pytest.raises(EmptyCodeError):
            run(executor, code="   \n\t")
        assert executor.calls == []

    def test_no_test_cases(self):
        with pytest.raises(NoTestCasesError):
            run(ScriptedExecutor(days_in_years), cases=[])

    def test_verdicts_are_deterministic(self):
        def half_right(code, language, stdin):
            return ExecutionResult(stdout="365" if stdin == "1" else "?")

        first = run(ScriptedExecutor(half_right))
        second = run(ScriptedExecutor(half_right))
        assert [r.passed for r in first.results] == [r.passed for r in second.results] == [True, False, False]


class GatedExecutor(ScriptedExecutor):
    """Holds every sandbox call until `release` is set"""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()
        self.finished = []

    async def execute(self, code, language, stdin=""):
        self.calls.append((code, language, stdin))
        await self.release.wait()
        self.finished.append(stdin)
        return ExecutionResult(stdout=stdin)


class TestCancelledSubmission:
    def test_sandbox_call_finishes_and_nothing_is_saved(self, db):
        topic = Topic.from_document(python_topic(1))

        async def scenario():
            executor = GatedExecutor()

            async def submit():
                test_run = await run_test_suite(executor, "print(input())", "python", topic.test_cases)
                await update_progress(db, "u1", lambda r: on_submission(r, topic, test_run))

            task = asyncio.ensure_future(submit())
            while not executor.calls:
                await asyncio.sleep(0)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

            executor.release.set()
            for _ in range(5):
                await asyncio.sleep(0)
            return executor

        executor = asyncio.run(scenario())
        assert executor.finished == ["1"]
        assert len(executor.calls) == 1
        assert db.user_progress.docs == []
