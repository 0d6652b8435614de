"""
Context Bridge — adapts conversational context when the modality changes.

The one place bridging lives. Two layers:

- Text rewriting (bridge_context): deterministic string pipelines that make
  spoken-style text readable on screen (voice → text) or written-style text
  speakable (text → voice).
- Session rendering (bridge_memories): turns a session's memory bank into the
  context string handed to the response generator after a switch.

Both dispatch on BridgeDirection. No NLU: filler removal, topic segmentation,
and connective substitution are plain pattern matching.

Stateless apart from the injectable random source used to pick
conversational markers; safe for unsynchronized concurrent use.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from switchboard.session.models import Modality

if TYPE_CHECKING:
    from switchboard.session.memory import MemoryBank

logger = logging.getLogger(__name__)


class BridgeDirection(str, Enum):
    SAME = "same"
    VOICE_TO_TEXT = "voice_to_text"
    TEXT_TO_VOICE = "text_to_voice"

    @classmethod
    def resolve(cls, source: str, target: str) -> BridgeDirection:
        source, target = Modality(source), Modality(target)
        if source == target:
            return cls.SAME
        if source == Modality.VOICE:
            return cls.VOICE_TO_TEXT
        return cls.TEXT_TO_VOICE


# ─── Voice → text vocabulary ────────────────────────────────────

FILLER_RE = re.compile(r"um|uh|like|you know", re.IGNORECASE)
WHITESPACE_RE = re.compile(r"\s+")
SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
WORD_SPLIT_RE = re.compile(r"\W+")
LIST_ITEM_RE = re.compile(r"([.!?]+)\s*(\d+\.|[-•])")
KEY_POINT_RE = re.compile(r"(important|key|must|critical|essential)", re.IGNORECASE)

STOP_WORDS = frozenset(
    {
        "the", "be", "to", "of", "and", "a", "in", "that", "have",
        "this", "from", "with", "they", "would", "what", "when",
        "there", "about",
    }
)
MIN_KEYWORD_LENGTH = 4
HEADING_KEYWORDS = 3

# ─── Text → voice vocabulary ────────────────────────────────────

CASUAL_SUBSTITUTIONS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"therefore|however|moreover", re.IGNORECASE), "so"),
    (re.compile(r"additionally", re.IGNORECASE), "also"),
    (re.compile(r"regarding", re.IGNORECASE), "about"),
]
SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
CLAUSE_SPLIT_RE = re.compile(r",|;|\band\b|\bor\b")
CONVERSATIONAL_MARKERS = ("you see", "basically", "actually", "right", "well")
LONG_SENTENCE_CHARS = 100
MARKER_LINE_CHARS = 50

# ─── Session rendering ──────────────────────────────────────────

VOICE_CONTEXT_HEADER = "Previous voice conversation context:\n"
TEXT_MODE_INSTRUCTION = (
    "\nNow switching to text mode - please provide structured responses."
)
TEXT_CONTEXT_HEADER = "We were just discussing: "
VOICE_MODE_INSTRUCTION = (
    ". Now switching to voice conversation - please speak naturally."
)
SPOKEN_ITEM_CHARS = 100


@dataclass
class Topic:
    heading: str
    keywords: list[str]
    sentences: list[str]

    @property
    def content(self) -> str:
        return ". ".join(self.sentences)


class ContextBridge:
    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()
        # Nothing populates this yet; kept so clear_cache() has a target
        self._cache: dict[str, Any] = {}

    # ─── Text rewriting ──────────────────────────────────────────

    def bridge_context(self, context: str, source: str, target: str) -> str:
        """Rewrite `context` so it reads naturally in the target modality."""
        direction = BridgeDirection.resolve(source, target)
        if direction is BridgeDirection.VOICE_TO_TEXT:
            return self.voice_to_text_bridge(context)
        if direction is BridgeDirection.TEXT_TO_VOICE:
            return self.text_to_voice_bridge(context)
        return context

    def voice_to_text_bridge(self, context: str) -> str:
        """Strip speech artifacts, then structure into sections, lists, and highlights."""
        bridged = FILLER_RE.sub("", context)
        bridged = WHITESPACE_RE.sub(" ", bridged).strip()

        topics = self.detect_topics(bridged)
        if len(topics) > 1:
            bridged = "\n\n".join(
                f"{t.heading}:\n{t.content}" for t in topics
            )

        bridged = LIST_ITEM_RE.sub(r"\1\n\n\2", bridged)
        return KEY_POINT_RE.sub(r"**\1**", bridged)

    def text_to_voice_bridge(self, context: str) -> str:
        """Casual connectives, short sentences, conversational markers."""
        bridged = context
        for pattern, replacement in CASUAL_SUBSTITUTIONS:
            bridged = pattern.sub(replacement, bridged)

        bridged = SENTENCE_RE.sub(self._split_long_sentence, bridged)
        return "\n".join(self._add_marker(line) for line in bridged.split("\n"))

    def detect_topics(self, text: str) -> list[Topic]:
        """Group sentences into topics by keyword overlap with the running heading.

        A sentence opens a new topic when none of its keywords appear in the
        current heading, so a keyword-less sentence always does. A topic whose
        heading comes out empty is never returned, and its sentences are
        dropped along with it.
        """
        topics: list[Topic] = []
        current: Topic | None = None
        for raw in SENTENCE_SPLIT_RE.split(text):
            sentence = raw.strip()
            keywords = extract_keywords(sentence)
            if current is not None and set(keywords) & set(current.keywords):
                current.sentences.append(sentence)
                continue

            heading_words = keywords[:HEADING_KEYWORDS]
            current = Topic(
                heading=" ".join(w.capitalize() for w in heading_words),
                keywords=heading_words,
                sentences=[sentence],
            )
            if current.heading:
                topics.append(current)
        return topics

    def _split_long_sentence(self, match: re.Match[str]) -> str:
        sentence = match.group(0)
        if len(sentence) <= LONG_SENTENCE_CHARS:
            return sentence
        return ".\n".join(CLAUSE_SPLIT_RE.split(sentence))

    def _add_marker(self, line: str) -> str:
        if len(line) <= MARKER_LINE_CHARS:
            return line
        marker = self._rng.choice(CONVERSATIONAL_MARKERS)
        return f"{marker}, {line[0].lower()}{line[1:]}"

    # ─── Session rendering ───────────────────────────────────────

    def bridge_memories(
        self,
        memories: "MemoryBank",
        direction: BridgeDirection,
        count: int = 3,
    ) -> str:
        """Render a memory bank as context for the modality being switched to.

        Falls back to recent_context() when the source modality has no items.
        """
        if direction is BridgeDirection.VOICE_TO_TEXT:
            items = memories.recent(count, modality=Modality.VOICE.value)
            if items:
                lines = "".join(
                    f"{i}. {item.content}\n" for i, item in enumerate(items, start=1)
                )
                return f"{VOICE_CONTEXT_HEADER}{lines}{TEXT_MODE_INSTRUCTION}"

        elif direction is BridgeDirection.TEXT_TO_VOICE:
            items = memories.recent(count, modality=Modality.TEXT.value)
            if items:
                spoken = ". ".join(
                    _truncate(item.content, SPOKEN_ITEM_CHARS) for item in items
                )
                return f"{TEXT_CONTEXT_HEADER}{spoken}{VOICE_MODE_INSTRUCTION}"

        if direction is not BridgeDirection.SAME:
            logger.debug("No %s memories to bridge; using recent context", direction.value)
        return self.recent_context(memories, count)

    @staticmethod
    def recent_context(memories: "MemoryBank", count: int = 3) -> str:
        """Newline-joined content of the `count` newest items, newest first."""
        return "\n".join(item.content for item in memories.recent(count))

    def clear_cache(self) -> None:
        self._cache.clear()


def extract_keywords(text: str) -> list[str]:
    return [
        word
        for word in WORD_SPLIT_RE.split(text.lower())
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    ]


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text
