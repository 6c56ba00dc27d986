"""Adaptive difficulty: score learner utterances and recommend the level for the next reply.

``assess`` is a cheap lexical heuristic over one utterance. ``adapt`` averages
it over the last few learner messages and moves at most one CEFR step away
from the learner's saved level. The shift thresholds are wider than the
signal thresholds: the confident/struggling badge moves before the level does.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal

from levels import DIFFICULTY_LEVELS, normalize_level, step_down, step_up
from services.transcript import Message

logger = logging.getLogger(__name__)

Signal = Literal["confident", "struggling", "neutral"]

STRUGGLE_PHRASES = (
    "i don't understand",
    "i don't know",
    "what does",
    "what is",
    "can you explain",
    "too difficult",
    "too hard",
    "i can't",
    "help me",
    "sorry",
    "i mean",
    "how do you say",
)

CONFIDENCE_CONNECTORS = (
    "actually",
    "in my opinion",
    "on the other hand",
    "for example",
    "in addition",
    "however",
    "moreover",
    "although",
    "because",
    "therefore",
    "furthermore",
    "nevertheless",
)

STRUGGLE_PENALTY = 0.5
SINGLE_CONNECTOR_BONUS = 0.3
MULTI_CONNECTOR_BONUS = 0.6

SIGNAL_THRESHOLD = 0.25
SHIFT_THRESHOLD = 0.35
DEFAULT_WINDOW = 3


@dataclass(frozen=True)
class AssessmentResult:
    signal: Signal
    score: float


@dataclass(frozen=True)
class DifficultyRecommendation:
    effective_level: str
    signal: Signal
    average_score: float = 0.0
    sample_size: int = 0


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def _length_score(word_count: int) -> float:
    if word_count <= 2:
        return -0.6
    if word_count <= 5:
        return -0.2
    if word_count >= 25:
        return 0.5
    if word_count >= 15:
        return 0.3
    return 0.0


def classify(score: float) -> Signal:
    if score >= SIGNAL_THRESHOLD:
        return "confident"
    if score <= -SIGNAL_THRESHOLD:
        return "struggling"
    return "neutral"


def assess(utterance: str) -> AssessmentResult:
    """Score one learner utterance from -1 (struggling) to +1 (confident)."""
    normalized = _normalize(utterance or "")
    word_count = len(normalized.split())

    score = _length_score(word_count)

    # Help-seeking counts once, however many phrases match.
    if any(phrase in normalized for phrase in STRUGGLE_PHRASES):
        score -= STRUGGLE_PENALTY

    hits = sum(1 for connector in CONFIDENCE_CONNECTORS if connector in normalized)
    if hits >= 2:
        score += MULTI_CONNECTOR_BONUS
    elif hits == 1:
        score += SINGLE_CONNECTOR_BONUS

    score = max(-1.0, min(1.0, score))
    return AssessmentResult(signal=classify(score), score=score)


def adapt(
    messages: Iterable[Message],
    current_level: str,
    window_size: int = DEFAULT_WINDOW,
) -> DifficultyRecommendation:
    """Recommend the effective level for the next tutor reply.

    Only the last ``window_size`` learner messages count. With no learner
    messages the current level is returned unchanged with a neutral signal.
    """
    level = normalize_level(current_level)
    if level is None:
        raise ValueError(f"Unknown difficulty level: {current_level!r}")

    learner = [m for m in messages if m.role == "user"]
    window = learner[-window_size:] if window_size > 0 else []
    if not window:
        return DifficultyRecommendation(effective_level=level, signal="neutral")

    scores = [assess(m.content).score for m in window]
    average = sum(scores) / len(scores)

    effective = level
    if average >= SHIFT_THRESHOLD and level != DIFFICULTY_LEVELS[-1]:
        effective = step_up(level)
    elif average <= -SHIFT_THRESHOLD and level != DIFFICULTY_LEVELS[0]:
        effective = step_down(level)

    if effective != level:
        logger.debug("Effective level %s -> %s (avg=%.2f over %d)", level, effective, average, len(scores))

    return DifficultyRecommendation(
        effective_level=effective,
        signal=classify(average),
        average_score=average,
        sample_size=len(scores),
    )
