"""Core module - debate session lifecycle, message ledger and shared primitives."""

from .errors import (
    DebateError,
    ValidationError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    ConflictError,
    ReplySuperseded,
    InvalidTransition,
    SessionExpired,
    GenerationUnavailable,
    InternalError,
)
from .locks import KeyedLock

__all__ = [
    'DebateError',
    'ValidationError',
    'UnauthorizedError',
    'ForbiddenError',
    'NotFoundError',
    'ConflictError',
    'ReplySuperseded',
    'InvalidTransition',
    'SessionExpired',
    'GenerationUnavailable',
    'InternalError',
    'KeyedLock',
]
