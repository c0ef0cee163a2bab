"""Qt models for Agents Monitor."""

from agents_monitor.models.session_model import SessionModel

__all__ = ["SessionModel"]
