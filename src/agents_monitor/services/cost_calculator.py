"""Token and cost extraction from full Claude Code and Codex session logs.

Both calculators read the whole file: usage records are interleaved with
conversation lines and can appear anywhere in it.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from agents_monitor.services.jsonl_reader import iter_json_objects
from agents_monitor.types import (
    CodexCalculationResult,
    RateLimitSnapshot,
    SessionTokenSummary,
    UsageWindow,
)
from agents_monitor.utils.timestamps import datetime_from_epoch_seconds
from agents_monitor.utils.token_costs import (
    calculate_cost,
    format_model_name,
    is_placeholder_model,
)

logger = logging.getLogger(__name__)


@dataclass
class _TokenTotals:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_tokens: int = 0
    cache_read_tokens: int = 0

    def cost(self, model: str) -> float:
        return calculate_cost(
            model,
            self.input_tokens,
            self.output_tokens,
            self.cache_write_tokens,
            self.cache_read_tokens,
        )


def _count(value) -> int:
    """Token counts arrive as JSON integers; anything else counts as zero."""
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def calculate_claude(jsonl_path: str | Path) -> SessionTokenSummary | None:
    """Sum the usage of every assistant API call in a Claude Code log.

    Each assistant line is an independent call, so usage is additive. Cost is
    priced per model, which matters when a session switches models midway.
    Returns None only if the file can't be read; a log without any usage
    yields an all-zero summary.
    """
    totals = _TokenTotals()
    per_model: dict[str, _TokenTotals] = {}
    model_counts: dict[str, int] = {}
    api_calls = 0

    try:
        for raw in iter_json_objects(jsonl_path):
            if raw.get("type") != "assistant":
                continue
            message = raw.get("message")
            if not isinstance(message, dict):
                continue
            usage = message.get("usage")
            if not isinstance(usage, dict):
                continue

            api_calls += 1
            input_tokens = _count(usage.get("input_tokens"))
            output_tokens = _count(usage.get("output_tokens"))
            cache_write = _count(usage.get("cache_creation_input_tokens"))
            cache_read = _count(usage.get("cache_read_input_tokens"))
            model = message.get("model")
            if not isinstance(model, str):
                model = ""

            totals.input_tokens += input_tokens
            totals.output_tokens += output_tokens
            totals.cache_write_tokens += cache_write
            totals.cache_read_tokens += cache_read

            if not is_placeholder_model(model):
                model_counts[model] = model_counts.get(model, 0) + 1

            model_totals = per_model.setdefault(model, _TokenTotals())
            model_totals.input_tokens += input_tokens
            model_totals.output_tokens += output_tokens
            model_totals.cache_write_tokens += cache_write
            model_totals.cache_read_tokens += cache_read
    except OSError as e:
        logger.warning("Cannot read JSONL file %s: %s", jsonl_path, e)
        return None

    # max() keeps the first maximum, and dicts preserve first-seen order
    primary_model = max(model_counts, key=model_counts.get) if model_counts else ""
    cost = sum(model_totals.cost(model) for model, model_totals in per_model.items())

    return SessionTokenSummary(
        input_tokens=totals.input_tokens,
        output_tokens=totals.output_tokens,
        cache_write_tokens=totals.cache_write_tokens,
        cache_read_tokens=totals.cache_read_tokens,
        cost=cost,
        model_name=format_model_name(primary_model),
        api_calls=api_calls,
    )


def calculate_codex(jsonl_path: str | Path) -> CodexCalculationResult | None:
    """Extract the final cumulative usage snapshot from a Codex log.

    token_count events carry running totals, so only the last one counts.
    Returns None if the file can't be read or has no token_count snapshot.
    """
    model = ""
    api_calls = 0
    last_input = 0
    last_cached = 0
    last_output = 0
    found_tokens = False
    last_rate_limits = None

    try:
        for raw in iter_json_objects(jsonl_path):
            line_type = raw.get("type")
            payload = raw.get("payload")
            if not isinstance(payload, dict):
                continue

            if line_type == "turn_context":
                api_calls += 1
                candidate = payload.get("model")
                if not model and isinstance(candidate, str):
                    model = candidate

            elif line_type == "event_msg":
                if payload.get("type") != "token_count":
                    continue

                rate_limits = payload.get("rate_limits")
                if isinstance(rate_limits, dict):
                    last_rate_limits = rate_limits

                info = payload.get("info")
                if not isinstance(info, dict):
                    continue
                usage = info.get("total_token_usage")
                if not isinstance(usage, dict):
                    continue

                last_input = _count(usage.get("input_tokens"))
                last_cached = _count(usage.get("cached_input_tokens"))
                last_output = _count(usage.get("output_tokens"))
                found_tokens = True
    except OSError as e:
        logger.warning("Cannot read JSONL file %s: %s", jsonl_path, e)
        return None

    if not found_tokens:
        return None

    uncached_input = max(last_input - last_cached, 0)
    cost = calculate_cost(
        model,
        input_tokens=uncached_input,
        output_tokens=last_output,
        cache_write_tokens=0,
        cache_read_tokens=last_cached,
    )

    summary = SessionTokenSummary(
        input_tokens=uncached_input,
        output_tokens=last_output,
        cache_write_tokens=0,
        cache_read_tokens=last_cached,
        cost=cost,
        model_name=format_model_name(model),
        api_calls=api_calls,
    )
    return CodexCalculationResult(
        token_summary=summary,
        rate_limits=parse_codex_rate_limits(last_rate_limits),
    )


def calculate_codex_summary(jsonl_path: str | Path) -> SessionTokenSummary | None:
    result = calculate_codex(jsonl_path)
    return result.token_summary if result is not None else None


def parse_codex_rate_limits(data) -> RateLimitSnapshot | None:
    """Build a snapshot from a token_count ``rate_limits`` block.

    Both the primary and secondary windows must be present.
    """
    if not isinstance(data, dict):
        return None
    primary = data.get("primary")
    secondary = data.get("secondary")
    if not isinstance(primary, dict) or not isinstance(secondary, dict):
        return None
    return RateLimitSnapshot(
        primary=_parse_usage_window(primary),
        secondary=_parse_usage_window(secondary),
    )


def _parse_usage_window(window: dict) -> UsageWindow:
    used_percent = window.get("used_percent")
    if isinstance(used_percent, bool) or not isinstance(used_percent, (int, float)):
        if used_percent is not None:
            logger.warning("used_percent has unexpected type: %s", type(used_percent).__name__)
        used_percent = 0.0
    return UsageWindow(
        utilization=used_percent / 100.0,
        resets_at=datetime_from_epoch_seconds(window.get("resets_at")),
    )
