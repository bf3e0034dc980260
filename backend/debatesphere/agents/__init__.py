"""Agents module - AI opponent, scoring engine, coaching and turn orchestration."""

from .base_agent import BaseAgent
from .opponent_agent import OpponentAgent, classify_response, estimate_confidence
from .scoring_agent import ScoringAgent, parse_analysis
from .coach_agent import CoachAgent
from .orchestrator import DebateOrchestrator

__all__ = [
    'BaseAgent',
    'OpponentAgent',
    'classify_response',
    'estimate_confidence',
    'ScoringAgent',
    'parse_analysis',
    'CoachAgent',
    'DebateOrchestrator',
]
