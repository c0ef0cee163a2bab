"""Session and metrics types."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional

from agents_monitor.types.usage import SessionTokenSummary


class SessionStatus(str, Enum):
    RUNNING = "running"
    WAITING = "waiting"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED, SessionStatus.CANCELLED)


class AgentType(str, Enum):
    CLAUDE_CODE = "claude_code"
    CODEX = "codex"

    @property
    def display_name(self) -> str:
        if self is AgentType.CLAUDE_CODE:
            return "Claude Code"
        return "Codex"


DEFAULT_CONTEXT_WINDOW_MAX = 200_000


@dataclass
class SessionMetrics:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_tokens: int = 0
    cache_read_tokens: int = 0
    cost: float = 0.0
    model_name: str = ""
    api_calls: int = 0
    context_window_max: int = DEFAULT_CONTEXT_WINDOW_MAX

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens + self.output_tokens +
                self.cache_write_tokens + self.cache_read_tokens)

    @property
    def context_window_usage(self) -> float:
        if self.context_window_max <= 0:
            return 0.0
        return min(max(self.total_tokens / self.context_window_max, 0.0), 1.0)

    @property
    def formatted_tokens(self) -> str:
        total = self.total_tokens
        if total >= 1_000_000:
            return f"{total / 1_000_000:.1f}M"
        if total >= 1_000:
            return f"{total / 1_000:.1f}K"
        return str(total)

    @property
    def formatted_cost(self) -> str:
        return f"${self.cost:.4f}" if self.cost > 0 else "--"

    @classmethod
    def from_summary(cls, summary: SessionTokenSummary) -> "SessionMetrics":
        return cls(
            input_tokens=summary.input_tokens,
            output_tokens=summary.output_tokens,
            cache_write_tokens=summary.cache_write_tokens,
            cache_read_tokens=summary.cache_read_tokens,
            cost=summary.cost,
            model_name=summary.model_name,
            api_calls=summary.api_calls,
        )


@dataclass
class Session:
    """One agent CLI invocation, backed by exactly one JSONL log file.

    ``ended_at`` is set only while ``status`` is terminal and ``file_mtime``
    is the log file's modification time (ms) at discovery.
    """
    id: uuid.UUID
    name: str
    status: SessionStatus
    agent_type: AgentType
    started_at: datetime
    jsonl_path: str
    file_mtime: int
    ended_at: Optional[datetime] = None
    metrics: SessionMetrics = field(default_factory=SessionMetrics)
    project_path: Optional[str] = None
    git_branch: Optional[str] = None
    first_prompt: Optional[str] = None
    summary: Optional[str] = None
    is_sidechain: bool = False

    @property
    def working_directory(self) -> Path | None:
        return Path(self.project_path) if self.project_path else None

    @property
    def is_running(self) -> bool:
        return self.status == SessionStatus.RUNNING

    def duration(self, as_of: datetime | None = None) -> float:
        """Seconds between start and end (or ``as_of``/now while still open)."""
        end = self.ended_at or as_of or datetime.now(timezone.utc)
        return (end - self.started_at).total_seconds()

    def apply_summary(self, summary: SessionTokenSummary):
        """Attach computed token/cost metrics, keeping the discovered model name if none was found."""
        metrics = SessionMetrics.from_summary(summary)
        if not metrics.model_name:
            metrics.model_name = self.metrics.model_name
        metrics.context_window_max = self.metrics.context_window_max
        self.metrics = metrics
