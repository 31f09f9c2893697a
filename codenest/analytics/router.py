from fastapi import APIRouter, Depends, HTTPException, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from codenest import config
from codenest.dependencies import CurrentUser, get_current_user, get_db
from codenest.progress.database import get_leaderboard, get_or_create_progress, update_progress
from codenest.progress.errors import ProgressConflictError
from codenest.progress.gamification import (
    award_badge,
    recent_activity,
    set_skill_metrics,
    today_utc,
    xp_to_next_level,
)
from codenest.progress.models import BadgeRequest, ProgressRecord, SkillUpdateRequest

router = APIRouter(prefix="/analytics", tags=["Analytics"])


def _skills_payload(record: ProgressRecord) -> dict:
    skills = record.skill_metrics
    return {
        "syntax": skills.syntax,
        "logic": skills.logic,
        "dataStructures": skills.data_structures,
        "optimization": skills.optimization,
    }


def _badges_payload(record: ProgressRecord) -> list:
    return [
        {"name": b.name, "icon": b.icon, "earnedAt": b.earned_at.isoformat()}
        for b in record.badges
    ]


@router.get("")
async def get_analytics(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Profile summary plus the last year of daily activity"""
    record = await get_or_create_progress(db, user.user_id, user.username)

    return {
        "user": {
            "username": record.username,
            "xp": record.xp,
            "level": record.level,
            "xpToNextLevel": xp_to_next_level(record.xp),
            "streak": record.streak,
            "longestStreak": record.longest_streak,
            "lastActivityDate": record.last_activity_date.isoformat() if record.last_activity_date else None,
            "badges": _badges_payload(record),
            "skillMetrics": _skills_payload(record),
            "completedTopics": sorted(record.completed_topics),
        },
        "activityData": [
            {"date": e.date.isoformat(), "submissions": e.submissions, "points": e.points}
            for e in recent_activity(record, today_utc())
        ],
    }


@router.put("/skills")
async def update_skills(
    body: SkillUpdateRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    """Manually set skill metrics (each clamped to 0-100)"""
    values = body.model_dump()
    try:
        record, _ = await update_progress(
            db, user.user_id, lambda r: set_skill_metrics(r, **values), username=user.username
        )
    except ProgressConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _skills_payload(record)


@router.post("/badge")
async def earn_badge(
    body: BadgeRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    try:
        record, awarded = await update_progress(
            db,
            user.user_id,
            lambda r: award_badge(r, body.name, body.icon),
            username=user.username,
            persist_if=lambda awarded: awarded,
        )
    except ProgressConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "awarded": awarded,
        "message": "Badge awarded!" if awarded else "Badge already earned",
        "badges": _badges_payload(record),
    }


@router.get("/leaderboard")
async def leaderboard(
    limit: int = Query(config.LEADERBOARD_DEFAULT_LIMIT, ge=1, le=config.LEADERBOARD_MAX_LIMIT),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Top users by XP (public)"""
    return {"leaderboard": await get_leaderboard(db, limit)}
