from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from codenest import config
from codenest.dependencies import CurrentUser, get_current_user, get_db, get_executor
from codenest.execution.piston import PistonClient, UnsupportedLanguageError
from codenest.progress.database import get_or_create_progress, get_roadmap, get_topic, update_progress
from codenest.progress.errors import (
    EmptyCodeError,
    NoTestCasesError,
    ProgressConflictError,
    TopicNotFoundError,
)
from codenest.progress.gamification import today_utc
from codenest.progress.models import CompleteTopicRequest, SubmitTestSuiteRequest, TopicState
from codenest.progress.orchestrator import on_submission, on_suite_attempt
from codenest.progress.topics import complete_topic, is_unlocked, topic_states
from codenest.progress.verifier import run_test_suite

router = APIRouter(prefix="/progress", tags=["Progress"])

# ==================== ROADMAP ====================

@router.get("/completed")
async def get_completed_topics(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    record = await get_or_create_progress(db, user.user_id, user.username)
    return {"success": True, "completedTopics": sorted(record.completed_topics)}


@router.get("/roadmap")
async def get_roadmap_with_state(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Roadmap topics in order, each marked locked / unlocked / completed"""
    roadmap = await get_roadmap(db)
    record = await get_or_create_progress(db, user.user_id, user.username)
    states = topic_states(roadmap, record.completed_topics)

    return {
        "topics": [
            {
                "order": topic.order,
                "title": topic.title,
                "description": topic.description,
                "problemStatement": topic.problem_statement,
                "starterCode": topic.starter_code,
                "testCaseCount": len(topic.test_cases),
                "state": states[topic.order].value,
            }
            for topic in roadmap
        ],
        "completedCount": sum(1 for s in states.values() if s == TopicState.COMPLETED),
        "total": len(roadmap),
    }

# ==================== UNLOCK GATE ====================

async def _load_open_topic(db: AsyncIOMotorDatabase, user: CurrentUser, topic_order: int):
    """
    Resolve a roadmap topic the user may work on.
    Unknown order -> 404, locked topic -> 403. A completed topic stays open.
    """
    try:
        topic = await get_topic(db, topic_order)
    except TopicNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    record = await get_or_create_progress(db, user.user_id, user.username)
    if topic.order not in record.completed_topics:
        roadmap = await get_roadmap(db)
        if not is_unlocked(topic.order, record.completed_topics, roadmap):
            raise HTTPException(status_code=403, detail="Complete the previous topic to unlock this one")

    return topic, record

# ==================== COMPLETION ====================

@router.post("/complete")
async def mark_topic_complete(
    body: CompleteTopicRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Mark an unlocked topic completed. Repeating it is a no-op that awards nothing."""
    topic, _ = await _load_open_topic(db, user, body.topic_order)

    try:
        record, completion = await update_progress(
            db,
            user.user_id,
            lambda r: complete_topic(r, topic.order, config.TOPIC_COMPLETION_XP),
            username=user.username,
            persist_if=lambda c: not c.already_completed,
        )
    except ProgressConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if completion.already_completed:
        return {
            "success": True,
            "message": "Topic already completed",
            "alreadyCompleted": True,
            "completedTopics": sorted(record.completed_topics),
            "xpGained": 0,
            "newXP": record.xp,
            "newLevel": record.level,
        }

    return {
        "success": True,
        "message": f"Completed: {body.topic_title}",
        "alreadyCompleted": False,
        "completedTopics": sorted(record.completed_topics),
        "xpGained": completion.xp_gained,
        "newXP": completion.new_xp,
        "newLevel": completion.new_level,
        "leveledUp": completion.leveled_up,
    }

# ==================== TEST SUITE SUBMISSION ====================

@router.post("/submit")
async def submit_test_suite(
    body: SubmitTestSuiteRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    executor: PistonClient = Depends(get_executor),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Run the submission against every test case of the topic.

    - Counts towards the streak and daily activity (once per submission)
    - A fully passing suite completes the topic and awards the bonus once
    - Nothing is written until the whole suite has finished
    """
    if not body.code.strip():
        raise HTTPException(status_code=400, detail="Code cannot be empty")

    topic, record = await _load_open_topic(db, user, body.topic_order)

    try:
        test_run = await run_test_suite(executor, body.code, body.language, topic.test_cases)
    except (EmptyCodeError, NoTestCasesError, UnsupportedLanguageError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    today = today_utc()

    def apply(progress):
        outcome = on_submission(progress, topic, test_run)
        on_suite_attempt(progress, today, outcome.xp_gained)
        return outcome

    # sandbox never answered: no attempt to book, nothing to complete
    if test_run.executed:
        try:
            record, outcome = await update_progress(db, user.user_id, apply, username=user.username)
        except ProgressConflictError as e:
            raise HTTPException(status_code=409, detail=str(e))
    else:
        outcome = on_submission(record, topic, test_run)

    return {
        "results": [
            {
                "caseIndex": r.case_index,
                "input": r.input,
                "expected": r.expected_output,
                "actual": r.actual_output,
                "passed": r.passed,
                "errorKind": r.error_kind.value if r.error_kind else None,
            }
            for r in test_run.results
        ],
        "allPassed": test_run.all_passed,
        "passedCount": test_run.passed_count,
        "total": test_run.total,
        "xpGained": outcome.xp_gained,
        "newXP": record.xp,
        "newLevel": record.level,
        "leveledUp": outcome.leveled_up,
        "alreadyCompleted": outcome.already_completed,
        "streak": record.streak,
    }
