from models.learner import LearnerSettings, LearnerProgress
from models.conversation import ConversationRecord

__all__ = ["LearnerSettings", "LearnerProgress", "ConversationRecord"]
