import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from codenest import config
from codenest.progress.errors import ProgressConflictError, TopicNotFoundError
from codenest.progress.models import ProgressRecord, Topic

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ==================== INDEXES ====================

async def create_progress_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes for the progress collections"""
    await db.user_progress.create_index("user_id", unique=True)
    await db.user_progress.create_index([("xp", -1)])
    await db.topics.create_index("order", unique=True)
    logger.info("Progress indexes created")

# ==================== PROGRESS RECORD ====================

async def get_or_create_progress(
    db: AsyncIOMotorDatabase,
    user_id: str,
    username: Optional[str] = None,
) -> ProgressRecord:
    """Load the user's progress document, creating a fresh one on first use"""
    doc = await db.user_progress.find_one({"user_id": user_id})
    if doc is None:
        now = datetime.utcnow()
        fresh = ProgressRecord(user_id=user_id, username=username or user_id, created_at=now, updated_at=now)
        new_doc = fresh.to_document()
        new_doc.pop("user_id")
        new_doc["version"] = 0
        try:
            await db.user_progress.update_one(
                {"user_id": user_id},
                {"$setOnInsert": new_doc},
                upsert=True,
            )
        except DuplicateKeyError:
            # a concurrent request created it first
            pass
        doc = await db.user_progress.find_one({"user_id": user_id})

    return ProgressRecord.from_document(doc)


async def update_progress(
    db: AsyncIOMotorDatabase,
    user_id: str,
    mutate: Callable[[ProgressRecord], T],
    username: Optional[str] = None,
    max_attempts: int = config.PROGRESS_UPDATE_MAX_ATTEMPTS,
    persist_if: Optional[Callable[[T], bool]] = None,
) -> Tuple[ProgressRecord, T]:
    """
    Atomic read-modify-write of one user's progress document.

    `mutate` runs on a freshly loaded record; the result is written back only
    if nobody else wrote in between (version check). On conflict the whole
    mutation is re-applied to the newer document.

    `persist_if(outcome)` returning False means the mutation was a no-op:
    nothing is written and the version stays put.

    Returns (updated record, whatever `mutate` returned).
    """
    for attempt in range(1, max_attempts + 1):
        record = await get_or_create_progress(db, user_id, username)
        expected_version = record.version

        outcome = mutate(record)
        if persist_if is not None and not persist_if(outcome):
            return record, outcome

        record.updated_at = datetime.utcnow()
        result = await db.user_progress.update_one(
            {"user_id": user_id, "version": expected_version},
            {"$set": record.to_document(), "$inc": {"version": 1}},
        )
        if result.matched_count == 1:
            record.version = expected_version + 1
            return record, outcome

        logger.info(
            "Progress write conflict for %s (attempt %s/%s), retrying",
            user_id, attempt, max_attempts,
        )

    logger.error("Giving up on progress update for %s after %s attempts", user_id, max_attempts)
    raise ProgressConflictError("Progress was updated concurrently, please retry")

# ==================== ROADMAP ====================

async def get_roadmap(db: AsyncIOMotorDatabase) -> List[Topic]:
    """All topics in roadmap order"""
    cursor = db.topics.find({}).sort("order", 1)
    docs = await cursor.to_list(length=None)
    return [Topic.from_document(doc) for doc in docs]


async def get_topic(db: AsyncIOMotorDatabase, topic_order: int) -> Topic:
    doc = await db.topics.find_one({"order": topic_order})
    if not doc:
        raise TopicNotFoundError(f"Topic {topic_order} not found")
    return Topic.from_document(doc)

# ==================== LEADERBOARD ====================

async def get_leaderboard(db: AsyncIOMotorDatabase, limit: int = config.LEADERBOARD_DEFAULT_LIMIT) -> List[dict]:
    """Top users by XP"""
    cursor = db.user_progress.find(
        {},
        {"_id": 0, "user_id": 1, "username": 1, "xp": 1, "level": 1, "streak": 1, "badges": 1},
    ).sort("xp", -1).limit(limit)
    rows = await cursor.to_list(length=limit)

    return [
        {
            "rank": idx + 1,
            "userId": row["user_id"],
            "username": row.get("username") or row["user_id"],
            "xp": row.get("xp", 0),
            "level": row.get("level", 1),
            "streak": row.get("streak", 0),
            "badgeCount": len(row.get("badges") or []),
        }
        for idx, row in enumerate(rows)
    ]
