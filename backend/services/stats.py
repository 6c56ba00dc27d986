"""Aggregate statistics for the progress dashboard."""
from schemas.progress import ProgressStats, SessionRead, UserProgress
from topics import TOPICS


def compute_stats(sessions: list[SessionRead]) -> ProgressStats:
    total_seconds = 0.0
    topics: list[str] = []
    for s in sessions:
        if s.topic not in topics:
            topics.append(s.topic)
        if s.ended_at and s.started_at:
            total_seconds += max(0.0, (s.ended_at - s.started_at).total_seconds())

    total_minutes = round(total_seconds / 60)
    total_sessions = len(sessions)
    return ProgressStats(
        total_sessions=total_sessions,
        total_minutes=total_minutes,
        unique_topics=topics,
        average_minutes_per_session=round(total_minutes / total_sessions) if total_sessions else 0,
    )


def suggested_topics(progress: UserProgress) -> list[dict]:
    """Catalog topics the learner has not completed yet."""
    done = set(progress.topics_completed)
    return [t for t in TOPICS if t["id"] not in done]
