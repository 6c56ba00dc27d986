"""CEFR difficulty levels offered by the tutor and single-step moves between them."""
from typing import Literal

DifficultyLevel = Literal["A1", "A2", "B1", "B2", "C1"]

DIFFICULTY_LEVELS: tuple[str, ...] = ("A1", "A2", "B1", "B2", "C1")
DEFAULT_LEVEL = "A2"

LEVEL_DESCRIPTIONS = {
    "A1": (
        "Beginner level. Use very simple vocabulary, short sentences (5-8 words), basic grammar, "
        "and speak slowly. Avoid idioms. Add German translations for most new words."
    ),
    "A2": (
        "Elementary level. Use simple vocabulary, short to medium sentences, basic grammar structures. "
        "Add German translations for difficult words."
    ),
    "B1": (
        "Intermediate level. Use everyday vocabulary, medium-length sentences, and common expressions. "
        "Add German translations only for challenging words."
    ),
    "B2": (
        "Upper intermediate level. Use varied vocabulary, longer sentences, and some idiomatic expressions. "
        "Minimal German translations needed."
    ),
    "C1": (
        "Advanced level. Use rich vocabulary, complex sentences, idioms, and nuanced expressions. "
        "German translations rarely needed."
    ),
}


def normalize_level(value: str | None) -> str | None:
    if not value:
        return None
    upper = value.strip().upper()
    if upper in DIFFICULTY_LEVELS:
        return upper
    return None


def level_index(level: str) -> int:
    normalized = normalize_level(level)
    if normalized is None:
        raise ValueError(f"Unknown difficulty level: {level!r}")
    return DIFFICULTY_LEVELS.index(normalized)


def step_up(level: str) -> str:
    """One level harder, or the same level when already at the top."""
    idx = level_index(level)
    return DIFFICULTY_LEVELS[min(idx + 1, len(DIFFICULTY_LEVELS) - 1)]


def step_down(level: str) -> str:
    """One level easier, or the same level when already at the bottom."""
    idx = level_index(level)
    return DIFFICULTY_LEVELS[max(idx - 1, 0)]


def levels_up_to(level: str) -> tuple[str, ...]:
    return DIFFICULTY_LEVELS[: level_index(level) + 1]
