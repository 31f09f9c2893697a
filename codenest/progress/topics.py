"""
Topic completion and roadmap unlocking.

The roadmap is linear: topic N is unlocked once the topic before it
(by order) is completed. The first topic is always unlocked.
"""

from dataclasses import dataclass
from typing import Collection, Dict, Optional, Sequence

from codenest.progress.gamification import add_xp
from codenest.progress.models import ProgressRecord, Topic, TopicState


@dataclass
class CompletionResult:
    already_completed: bool
    leveled_up: bool = False
    xp_gained: int = 0
    new_xp: Optional[int] = None
    new_level: Optional[int] = None


def complete_topic(record: ProgressRecord, topic_order: int, xp_bonus: int) -> CompletionResult:
    """Mark a topic completed and award the bonus once"""
    if topic_order in record.completed_topics:
        return CompletionResult(already_completed=True, new_xp=record.xp, new_level=record.level)

    record.completed_topics.append(topic_order)
    leveled_up = add_xp(record, xp_bonus)
    return CompletionResult(
        already_completed=False,
        leveled_up=leveled_up,
        xp_gained=xp_bonus,
        new_xp=record.xp,
        new_level=record.level,
    )


def previous_topic_order(topic_order: int, roadmap: Sequence[Topic]) -> Optional[int]:
    orders = sorted(topic.order for topic in roadmap)
    if topic_order not in orders:
        return None
    index = orders.index(topic_order)
    return orders[index - 1] if index > 0 else None


def is_unlocked(topic_order: int, completed_topics: Collection[int], roadmap: Sequence[Topic]) -> bool:
    if not roadmap:
        return False
    first_order = min(topic.order for topic in roadmap)
    if topic_order == first_order:
        return True
    previous = previous_topic_order(topic_order, roadmap)
    return previous is not None and previous in completed_topics


def topic_states(roadmap: Sequence[Topic], completed_topics: Collection[int]) -> Dict[int, TopicState]:
    states = {}
    for topic in sorted(roadmap, key=lambda t: t.order):
        if topic.order in completed_topics:
            states[topic.order] = TopicState.COMPLETED
        elif is_unlocked(topic.order, completed_topics, roadmap):
            states[topic.order] = TopicState.UNLOCKED
        else:
            states[topic.order] = TopicState.LOCKED
    return states
