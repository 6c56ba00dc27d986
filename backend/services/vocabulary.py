"""Topic vocabulary lookups used to seed the tutor prompt."""
from __future__ import annotations

import random
from dataclasses import dataclass, asdict
from typing import Any

from levels import levels_up_to, normalize_level
from topics import VOCABULARY


@dataclass(frozen=True)
class VocabItem:
    word: str
    translation: str
    level: str
    example: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def get_vocabulary_for_topic(topic_id: str, level: str | None = None) -> list[VocabItem]:
    """Items for a topic up to and including ``level``; all items when the level is unknown."""
    items = [VocabItem(**entry) for entry in VOCABULARY.get(topic_id, [])]
    normalized = normalize_level(level)
    if normalized is None:
        return items
    allowed = set(levels_up_to(normalized))
    return [item for item in items if item.level in allowed]


def get_random_vocabulary(
    topic_id: str,
    level: str | None,
    count: int = 3,
    rng: random.Random | None = None,
) -> list[VocabItem]:
    available = get_vocabulary_for_topic(topic_id, level)
    if count >= len(available):
        return available
    return (rng or random).sample(available, count)


def format_vocabulary(items: list[VocabItem]) -> str:
    """Format suggestions for inclusion in the tutor prompt."""
    lines = []
    for item in items:
        line = f"  - {item.word} ({item.translation})"
        if item.example:
            line += f' - Example: "{item.example}"'
        lines.append(line)
    return "\n".join(lines)
