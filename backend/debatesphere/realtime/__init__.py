"""Realtime module - WebSocket fan-out of debate events."""

from .channel import Connection, FanOutChannel, message_payload

__all__ = ['Connection', 'FanOutChannel', 'message_payload']
