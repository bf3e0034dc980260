"""
Wall clock used by the session lifecycle.

Components take a ``Clock`` so tests can drive time explicitly.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
