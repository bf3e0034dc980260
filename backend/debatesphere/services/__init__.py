"""Services module - process-wide component wiring."""

from .container import DebateServices, build_services

__all__ = ['DebateServices', 'build_services']
