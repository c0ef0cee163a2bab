"""Capability interfaces shared by the per-agent session sources."""

from pathlib import Path
from typing import Callable, Protocol, runtime_checkable

from agents_monitor.services.cost_calculator import calculate_claude, calculate_codex_summary
from agents_monitor.types import AgentType, RateLimitSnapshot, Session, SessionTokenSummary

SummaryCalculator = Callable[[str | Path], SessionTokenSummary | None]

_CALCULATORS: dict[AgentType, SummaryCalculator] = {
    AgentType.CLAUDE_CODE: calculate_claude,
    AgentType.CODEX: calculate_codex_summary,
}


@runtime_checkable
class SessionSource(Protocol):
    agent_type: AgentType

    def discover(self, show_all: bool, show_sidechains: bool) -> list[Session]:
        ...


@runtime_checkable
class RateLimitSource(Protocol):
    def fetch_rate_limits(self) -> RateLimitSnapshot | None:
        ...


def calculator_for(agent_type: AgentType) -> SummaryCalculator:
    """The full-log summary calculator matching a session's agent."""
    return _CALCULATORS[agent_type]
