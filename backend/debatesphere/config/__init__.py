"""Configuration module."""

from .settings import Settings, settings
from .constraints import DebateConstraints, DEBATE_CONSTRAINTS

__all__ = ['Settings', 'settings', 'DebateConstraints', 'DEBATE_CONSTRAINTS']
