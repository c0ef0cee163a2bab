"""Services for Agents Monitor."""

from agents_monitor.services.session_store import SessionStore
from agents_monitor.services.cost_cache import CostCache
from agents_monitor.services.claude_sessions import ClaudeSessionService
from agents_monitor.services.codex_sessions import CodexSessionService
from agents_monitor.services.config_manager import ConfigManager
from agents_monitor.services.cost_calculator import calculate_claude, calculate_codex

__all__ = [
    "SessionStore",
    "CostCache",
    "ClaudeSessionService",
    "CodexSessionService",
    "ConfigManager",
    "calculate_claude",
    "calculate_codex",
]
