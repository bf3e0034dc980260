"""Models module."""

from .user import User, UserCreate, UserLogin, UserInDB, Token, TokenData
from .topic import Topic, TopicCreate, Evidence
from .debate import DebateSession, MessageCount, UserFeedback, SessionStats, opposite_side
from .message import (
    DebateMessage, MessagePage, Reaction, AIResponseMeta, TokenUsage, SenderStats
)
from .performance import (
    PerformanceMetrics, PerformanceScores, PerformanceFeedback, SessionMetrics,
    Provenance, SCORE_WEIGHTS, weighted_overall
)
from .coaching import (
    CoachingFeedback, FocusedSuggestion, TopicSuggestion, ArgumentImprovement, ArgumentSuggestion,
    EvidenceItem, EvidenceCheck, SuggestedEvidence, EvidenceValidation, Milestone, LearningPath
)
from .requests import (
    StartSessionRequest, SendMessageRequest, EndSessionRequest, FeedbackRequest,
    ReactionRequest, FlagRequest, CoachingFeedbackRequest, TopicSuggestionRequest,
    ImproveArgumentRequest, ValidateEvidenceRequest
)

__all__ = [
    'User', 'UserCreate', 'UserLogin', 'UserInDB', 'Token', 'TokenData',
    'Topic', 'TopicCreate', 'Evidence',
    'DebateSession', 'MessageCount', 'UserFeedback', 'SessionStats', 'opposite_side',
    'DebateMessage', 'MessagePage', 'Reaction', 'AIResponseMeta', 'TokenUsage', 'SenderStats',
    'PerformanceMetrics', 'PerformanceScores', 'PerformanceFeedback', 'SessionMetrics',
    'Provenance', 'SCORE_WEIGHTS', 'weighted_overall',
    'StartSessionRequest', 'SendMessageRequest', 'EndSessionRequest', 'FeedbackRequest',
    'ReactionRequest', 'FlagRequest', 'CoachingFeedbackRequest', 'TopicSuggestionRequest',
    'ImproveArgumentRequest', 'ValidateEvidenceRequest',
    'CoachingFeedback', 'FocusedSuggestion', 'TopicSuggestion', 'ArgumentImprovement',
    'ArgumentSuggestion', 'EvidenceItem', 'EvidenceCheck', 'SuggestedEvidence',
    'EvidenceValidation', 'Milestone', 'LearningPath',
]
