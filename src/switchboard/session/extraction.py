"""
Heuristic extraction — importance, tags, entities, topic.

Pattern and keyword based on purpose. There is no NLU here: entities are
email addresses only and the topic comes from a fixed keyword table.
"""

from __future__ import annotations

import re

from switchboard.session.models import (
    ExtractedEntity,
    MemoryItem,
    Message,
    MessageRole,
    Modality,
)

EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
EMAIL_CONFIDENCE = 0.9

# First match wins
TOPIC_KEYWORDS: list[tuple[tuple[str, ...], str]] = [
    (("order", "shipping"), "order_management"),
    (("account", "profile"), "account_management"),
]
DEFAULT_TOPIC = "general"

LONG_CONTENT_CHARS = 100


def calculate_importance(message: Message) -> float:
    score = 0.5
    if "?" in message.content:
        score += 0.3
    if len(message.content) > LONG_CONTENT_CHARS:
        score += 0.2
    if message.role == MessageRole.SYSTEM.value:
        score -= 0.3
    return max(0.0, min(1.0, score))


def extract_tags(content: str) -> tuple[str, ...]:
    tags = []
    if "question" in content or "?" in content:
        tags.append("question")
    if "help" in content or "support" in content:
        tags.append("help")
    return tuple(tags)


def to_memory_item(message: Message) -> MemoryItem:
    return MemoryItem(
        id=message.id,
        content=message.content,
        importance=calculate_importance(message),
        timestamp=message.timestamp,
        tags=extract_tags(message.content),
        modality=message.modality,
    )


def extract_entities(
    content: str, source: str = Modality.TEXT.value
) -> list[ExtractedEntity]:
    """Email addresses found in `content`, in order of appearance."""
    return [
        ExtractedEntity(
            name=email,
            type="email",
            value=email,
            confidence=EMAIL_CONFIDENCE,
            source=source,
        )
        for email in EMAIL_RE.findall(content)
    ]


def merge_entities(
    existing: list[ExtractedEntity], found: list[ExtractedEntity]
) -> list[ExtractedEntity]:
    """Append entities whose (name, type) is new. Existing entries are never updated.

    Returns the entities that were added.
    """
    seen = {e.key for e in existing}
    added = []
    for entity in found:
        if entity.key in seen:
            continue
        seen.add(entity.key)
        existing.append(entity)
        added.append(entity)
    return added


def detect_topic(content: str) -> str:
    lowered = content.lower()
    for keywords, topic in TOPIC_KEYWORDS:
        if any(k in lowered for k in keywords):
            return topic
    return DEFAULT_TOPIC
