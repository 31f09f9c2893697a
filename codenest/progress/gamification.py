"""
Gamification rules for a single progress record.
All functions mutate the record in place; the caller persists it.
"""

import datetime as dt
from typing import List, Optional

from codenest import config
from codenest.progress.errors import InvalidAmountError
from codenest.progress.models import ActivityLogEntry, Badge, ProgressRecord

SKILL_NAMES = ("syntax", "logic", "data_structures", "optimization")


def today_utc() -> dt.date:
    """Activity days are UTC calendar days"""
    return dt.datetime.utcnow().date()

# ==================== STREAK ====================

def update_streak(record: ProgressRecord, today: dt.date) -> bool:
    """
    Count `today` towards the streak.
    Returns False when today was already counted.
    """
    if record.last_activity_date == today:
        return False

    if record.last_activity_date == today - dt.timedelta(days=1):
        record.streak += 1
    else:
        record.streak = 1

    record.longest_streak = max(record.longest_streak, record.streak)
    record.last_activity_date = today
    return True

# ==================== XP / LEVEL ====================

def level_for_xp(xp: int) -> int:
    return xp // config.XP_PER_LEVEL + 1

def xp_to_next_level(xp: int) -> int:
    return level_for_xp(xp) * config.XP_PER_LEVEL - xp

def add_xp(record: ProgressRecord, amount: int) -> bool:
    """Add XP and recompute level. Returns True on level up (may skip levels)."""
    if amount < 0:
        raise InvalidAmountError(f"XP amount must be non-negative, got {amount}")

    record.xp += amount
    new_level = level_for_xp(record.xp)
    if new_level > record.level:
        record.level = new_level
        return True
    return False

# ==================== ACTIVITY LOG ====================

def record_activity(
    record: ProgressRecord,
    day: dt.date,
    submissions_delta: int,
    points_delta: int,
) -> ActivityLogEntry:
    if submissions_delta < 0 or points_delta < 0:
        raise InvalidAmountError("Activity deltas must be non-negative")

    for entry in record.activity_logs:
        if entry.date == day:
            entry.submissions += submissions_delta
            entry.points += points_delta
            return entry

    entry = ActivityLogEntry(date=day, submissions=submissions_delta, points=points_delta)
    record.activity_logs.append(entry)
    return entry

def recent_activity(
    record: ProgressRecord,
    today: dt.date,
    days: int = config.ACTIVITY_WINDOW_DAYS,
) -> List[ActivityLogEntry]:
    since = today - dt.timedelta(days=days)
    return [entry for entry in record.activity_logs if entry.date >= since]

# ==================== SKILLS ====================

def _clamp(value: int) -> int:
    return min(config.SKILL_METRIC_MAX, max(0, value))

def bump_skill(record: ProgressRecord, skill: str, delta: int = 1) -> int:
    if skill not in SKILL_NAMES:
        raise ValueError(f"Unknown skill metric: {skill}")
    value = _clamp(getattr(record.skill_metrics, skill) + delta)
    setattr(record.skill_metrics, skill, value)
    return value

def set_skill_metrics(record: ProgressRecord, **values: Optional[int]) -> None:
    """Overwrite the given metrics, clamped; None leaves a metric untouched"""
    for skill, value in values.items():
        if skill not in SKILL_NAMES:
            raise ValueError(f"Unknown skill metric: {skill}")
        if value is not None:
            setattr(record.skill_metrics, skill, _clamp(value))

# ==================== BADGES ====================

def award_badge(
    record: ProgressRecord,
    name: str,
    icon: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> bool:
    """Returns False when a badge with this name is already held"""
    if any(badge.name == name for badge in record.badges):
        return False
    record.badges.append(Badge(name=name, icon=icon, earned_at=now or dt.datetime.utcnow()))
    return True
