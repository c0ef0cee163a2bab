"""Type definitions for Agents Monitor."""

from agents_monitor.types.usage import (
    CodexCalculationResult,
    CostCacheEntry,
    RateLimitSnapshot,
    SessionTokenSummary,
    UsageWindow,
)
from agents_monitor.types.sessions import (
    AgentType,
    Session,
    SessionMetrics,
    SessionStatus,
)

__all__ = [
    "AgentType",
    "Session",
    "SessionMetrics",
    "SessionStatus",
    "SessionTokenSummary",
    "CostCacheEntry",
    "UsageWindow",
    "RateLimitSnapshot",
    "CodexCalculationResult",
]
