"""
Progress Orchestrator

Two events move a user's progress:
- every code run (Operation A) earns a small fixed reward and counts towards the streak
- a fully passing test suite (Operation B) completes the topic, rewarded once

A suite submission counts towards the streak and the day's activity but earns
no run XP of its own; its only XP is the completion bonus.
"""

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Optional

from codenest import config
from codenest.progress.gamification import add_xp, bump_skill, record_activity, update_streak
from codenest.progress.models import ProgressRecord, Topic
from codenest.progress.topics import CompletionResult, complete_topic
from codenest.progress.verifier import TestRunResult

logger = logging.getLogger(__name__)


@dataclass
class ExecutionReward:
    leveled_up: bool
    xp_gained: int
    new_xp: int
    new_level: int
    streak: int


@dataclass
class SubmissionOutcome:
    all_passed: bool
    completion: Optional[CompletionResult] = None

    @property
    def already_completed(self) -> Optional[bool]:
        return self.completion.already_completed if self.completion else None

    @property
    def leveled_up(self) -> bool:
        return bool(self.completion and self.completion.leveled_up)

    @property
    def xp_gained(self) -> int:
        return self.completion.xp_gained if self.completion else 0


def on_execution(record: ProgressRecord, today: dt.date) -> ExecutionReward:
    """Operation A: applied on any code run, whatever the verdict"""
    update_streak(record, today)
    record_activity(record, today, 1, config.EXECUTION_POINTS)
    leveled_up = add_xp(record, config.EXECUTION_XP)
    bump_skill(record, "syntax", 1)

    if leveled_up:
        logger.info("User %s reached level %s", record.user_id, record.level)

    return ExecutionReward(
        leveled_up=leveled_up,
        xp_gained=config.EXECUTION_XP,
        new_xp=record.xp,
        new_level=record.level,
        streak=record.streak,
    )


def on_submission(record: ProgressRecord, topic: Topic, test_run: TestRunResult) -> SubmissionOutcome:
    """Operation B: only a fully passing suite mutates the record"""
    if not test_run.all_passed:
        return SubmissionOutcome(all_passed=False)

    completion = complete_topic(record, topic.order, config.TOPIC_COMPLETION_XP)
    if not completion.already_completed:
        logger.info("User %s completed topic %s (%s)", record.user_id, topic.order, topic.title)
    return SubmissionOutcome(all_passed=True, completion=completion)


def on_suite_attempt(record: ProgressRecord, today: dt.date, points: int = 0) -> int:
    """
    Book a test-suite submission that reached the sandbox: streak and
    activity only. `points` is whatever XP the submission itself earned.
    Returns the current streak.
    """
    update_streak(record, today)
    record_activity(record, today, 1, points)
    return record.streak
