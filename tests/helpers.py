"""Shared test helpers."""

import json
import os
from pathlib import Path

NOW_MS = 1_760_000_000_000  # 2025-10-09T08:53:20Z


def fixed_clock(ms: int = NOW_MS):
    return lambda: ms / 1000


def set_mtime_ms(path: Path, ms: int):
    """Set a file's mtime to an exact millisecond value."""
    ns = ms * 1_000_000
    os.utime(path, ns=(ns, ns))


def write_jsonl(path: Path, lines: list, mtime_ms: int | None = None) -> Path:
    """Write dicts (serialized) or raw strings as JSONL lines."""
    path.parent.mkdir(parents=True, exist_ok=True)
    text = "\n".join(line if isinstance(line, str) else json.dumps(line) for line in lines)
    path.write_text(text + "\n")
    if mtime_ms is not None:
        set_mtime_ms(path, mtime_ms)
    return path


def claude_assistant_line(input_tokens=0, output_tokens=0, cache_write=0, cache_read=0,
                          model="claude-sonnet-4-5-20250929"):
    return {
        "type": "assistant",
        "timestamp": "2026-02-13T10:00:05.000Z",
        "message": {
            "role": "assistant",
            "model": model,
            "content": [{"type": "text", "text": "ok"}],
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "cache_creation_input_tokens": cache_write,
                "cache_read_input_tokens": cache_read,
            },
        },
    }


def claude_user_line(content="Hello", timestamp="2026-02-13T10:00:00.000Z",
                     cwd="/home/wiz/projects/myapp", branch="main", sidechain=False):
    return {
        "type": "user",
        "timestamp": timestamp,
        "cwd": cwd,
        "gitBranch": branch,
        "isSidechain": sidechain,
        "message": {"role": "user", "content": content},
    }


def codex_meta_line(session_id="0199a1b2-c3d4-7e5f-8a9b-0c1d2e3f4a5b",
                    timestamp="2026-02-13T10:00:00.000Z", cwd="/home/wiz/projects/api",
                    branch="feature/x", source="cli"):
    payload = {"id": session_id, "timestamp": timestamp, "cwd": cwd, "git": {"branch": branch}}
    if source is not None:
        payload["source"] = source
    return {"type": "session_meta", "payload": payload}


def codex_turn_context(model="gpt-5-codex"):
    return {"type": "turn_context", "payload": {"model": model}}


def codex_user_item(text):
    return {
        "type": "response_item",
        "payload": {"type": "message", "role": "user",
                    "content": [{"type": "input_text", "text": text}]},
    }


def codex_token_count(input_tokens, cached, output_tokens, rate_limits=None):
    payload = {
        "type": "token_count",
        "info": {"total_token_usage": {
            "input_tokens": input_tokens,
            "cached_input_tokens": cached,
            "output_tokens": output_tokens,
        }},
    }
    if rate_limits is not None:
        payload["rate_limits"] = rate_limits
    return {"type": "event_msg", "payload": payload}


def write_claude_index(project_dir: Path, entries: list[dict]) -> Path:
    index = project_dir / "sessions-index.json"
    index.write_text(json.dumps({"version": 1, "entries": entries}))
    return index


def wait_for_costs(store):
    """Wait for background cost workers to finish and deliver their signals."""
    store.wait_for_costs(5000)
