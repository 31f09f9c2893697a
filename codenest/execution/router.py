import logging

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from codenest.dependencies import CurrentUser, get_current_user, get_db, get_executor
from codenest.execution.piston import (
    LANGUAGE_MAP,
    ExecutionServiceUnavailableError,
    ExecutionTimeoutError,
    PistonClient,
    UnsupportedLanguageError,
)
from codenest.progress.database import update_progress
from codenest.progress.errors import ProgressConflictError
from codenest.progress.gamification import today_utc
from codenest.progress.models import ExecuteRequest
from codenest.progress.orchestrator import on_execution

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Execution"])


@router.post("/execute")
async def execute_code(
    body: ExecuteRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    executor: PistonClient = Depends(get_executor),
    user: CurrentUser = Depends(get_current_user),
):
    """
    Run code once in the sandbox and reward the run.
    Progress is only touched when the sandbox actually returned a result.
    """
    if not body.code.strip():
        raise HTTPException(status_code=400, detail="Code and language are required")

    try:
        result = await executor.execute(body.code, body.language, body.input)
    except UnsupportedLanguageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ExecutionTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except ExecutionServiceUnavailableError as e:
        raise HTTPException(status_code=502, detail=str(e))

    today = today_utc()
    try:
        record, reward = await update_progress(
            db, user.user_id, lambda r: on_execution(r, today), username=user.username
        )
    except ProgressConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "output": result.output,
        "error": result.error_message,
        "errorKind": result.error_kind.value if result.error_kind else None,
        "executionTimeMs": result.time_ms,
        "memoryMb": result.memory_mb,
        "success": result.success,
        "leveledUp": reward.leveled_up,
        "xpGained": reward.xp_gained,
        "newXP": reward.new_xp,
        "newLevel": reward.new_level,
        "streak": reward.streak,
    }


@router.get("/execute/languages")
async def get_languages():
    """Supported languages and the sandbox runtimes behind them"""
    return {
        "languages": [
            {
                "id": lang.value,
                "name": lang.value.capitalize(),
                **runtime,
            }
            for lang, runtime in LANGUAGE_MAP.items()
        ]
    }
