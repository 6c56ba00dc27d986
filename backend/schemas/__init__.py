from schemas.settings import UserSettings
from schemas.progress import UserProgress, SessionRead, SessionList, ProgressStats, CustomTopic
from schemas.tutor import GrammarCorrection, ProgressUpdate, TutorReply
from schemas.conversation import (
    ConversationStart, TextSubmission, TranscriptIn, PlaybackAck, MessageRead, ConversationSnapshot,
)

__all__ = [
    "UserSettings",
    "UserProgress", "SessionRead", "SessionList", "ProgressStats", "CustomTopic",
    "GrammarCorrection", "ProgressUpdate", "TutorReply",
    "ConversationStart", "TextSubmission", "TranscriptIn", "PlaybackAck", "MessageRead", "ConversationSnapshot",
]
