"""
Test Case Verifier
Runs a submission against every test case of a topic through the execution
sandbox and produces a per-case verdict.

- Cases run one at a time, in order
- A failing case never stops the remaining cases
- Never touches progress state
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from codenest.execution.piston import ExecutionError
from codenest.progress.errors import EmptyCodeError, NoTestCasesError
from codenest.progress.models import ErrorKind, TopicTestCase

logger = logging.getLogger(__name__)


@dataclass
class CaseResult:
    case_index: int
    input: str
    expected_output: str
    actual_output: str
    passed: bool
    error_kind: Optional[ErrorKind] = None


@dataclass
class TestRunResult:
    results: List[CaseResult] = field(default_factory=list)
    # True once any case came back from the sandbox with a result
    executed: bool = False

    @property
    def all_passed(self) -> bool:
        return bool(self.results) and all(r.passed for r in self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def total(self) -> int:
        return len(self.results)


def outputs_match(actual: str, expected: str) -> bool:
    return actual.strip() == expected.strip()


async def run_test_suite(
    executor,
    code: str,
    language,
    test_cases: Sequence[TopicTestCase],
) -> TestRunResult:
    """
    Execute `code` once per test case with the case input as stdin.

    `executor` is anything with `async execute(code, language, stdin)`
    returning an ExecutionResult (normally PistonClient).
    """
    if not code or not code.strip():
        raise EmptyCodeError("Code cannot be empty")
    if not test_cases:
        raise NoTestCasesError("No test cases available for this topic")

    run = TestRunResult()

    for index, case in enumerate(test_cases, start=1):
        try:
            # shielded so a disconnecting client does not orphan the sandbox call
            result = await asyncio.shield(executor.execute(code, language, case.input))
        except ExecutionError as e:
            logger.warning("Test case %s could not be executed: %s", index, e)
            run.results.append(CaseResult(
                case_index=index,
                input=case.input,
                expected_output=case.expected_output,
                actual_output=str(e),
                passed=False,
                error_kind=ErrorKind.SERVICE_ERROR,
            ))
            continue

        run.executed = True

        if result.error_kind is not None:
            actual = result.error_message
            passed = False
        else:
            actual = result.stdout.strip()
            passed = outputs_match(result.stdout, case.expected_output)

        run.results.append(CaseResult(
            case_index=index,
            input=case.input,
            expected_output=case.expected_output,
            actual_output=actual,
            passed=passed,
            error_kind=result.error_kind,
        ))

    logger.debug("Test suite finished: %s/%s passed", run.passed_count, run.total)
    return run
