"""Token summary, cost cache and rate-limit types."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


def _require_int(data: dict, key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class SessionTokenSummary:
    """Token and cost totals computed from one session log."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_tokens: int = 0
    cache_read_tokens: int = 0
    cost: float = 0.0
    model_name: str = ""
    api_calls: int = 0

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens + self.output_tokens +
                self.cache_write_tokens + self.cache_read_tokens)

    def to_dict(self) -> dict[str, Any]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cacheWriteTokens": self.cache_write_tokens,
            "cacheReadTokens": self.cache_read_tokens,
            "cost": self.cost,
            "modelName": self.model_name,
            "apiCalls": self.api_calls,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "SessionTokenSummary":
        if not isinstance(data, dict):
            raise ValueError("summary must be an object")
        try:
            cost = data["cost"]
            model_name = data["modelName"]
            if isinstance(cost, bool) or not isinstance(cost, (int, float)):
                raise ValueError("cost must be a number")
            if not isinstance(model_name, str):
                raise ValueError("modelName must be a string")
            return cls(
                input_tokens=_require_int(data, "inputTokens"),
                output_tokens=_require_int(data, "outputTokens"),
                cache_write_tokens=_require_int(data, "cacheWriteTokens"),
                cache_read_tokens=_require_int(data, "cacheReadTokens"),
                cost=float(cost),
                model_name=model_name,
                api_calls=_require_int(data, "apiCalls"),
            )
        except KeyError as e:
            raise ValueError(f"summary is missing {e.args[0]}") from e


@dataclass(frozen=True)
class CostCacheEntry:
    """A cached summary, valid only while the log file's mtime (ms) is unchanged."""
    mtime: int
    summary: SessionTokenSummary

    def to_dict(self) -> dict[str, Any]:
        return {"mtime": self.mtime, "summary": self.summary.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> "CostCacheEntry":
        if not isinstance(data, dict):
            raise ValueError("cache entry must be an object")
        try:
            mtime = _require_int(data, "mtime")
            summary = SessionTokenSummary.from_dict(data["summary"])
        except KeyError as e:
            raise ValueError(f"cache entry is missing {e.args[0]}") from e
        return cls(mtime=mtime, summary=summary)


@dataclass(frozen=True)
class UsageWindow:
    utilization: float
    resets_at: Optional[datetime] = None

    @property
    def percent(self) -> float:
        return self.utilization * 100.0


@dataclass(frozen=True)
class RateLimitSnapshot:
    primary: UsageWindow
    secondary: UsageWindow


@dataclass(frozen=True)
class CodexCalculationResult:
    token_summary: SessionTokenSummary
    rate_limits: Optional[RateLimitSnapshot] = None
