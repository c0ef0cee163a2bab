"""Codex session discovery and rate-limit lookup from ~/.codex/sessions."""

import logging
import time
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from agents_monitor.services.cost_calculator import calculate_codex
from agents_monitor.services.jsonl_reader import read_head_objects
from agents_monitor.types import (
    AgentType,
    RateLimitSnapshot,
    Session,
    SessionMetrics,
    SessionStatus,
)
from agents_monitor.utils.content_sanitizer import extract_codex_user_text, truncate
from agents_monitor.utils.session_ids import session_uuid_or_random
from agents_monitor.utils.timestamps import datetime_from_ms, file_mtime_ms, parse_iso8601

logger = logging.getLogger(__name__)

CODEX_DIR = Path.home() / ".codex"

# Codex writes its log less often than Claude Code, hence the longer window.
RECENT_WINDOW_S = 1800
RECENT_DAYS = 7

HEAD_SCAN_BYTES = 16 * 1024
HEAD_SCAN_LINES = 50
PROMPT_PREVIEW_LIMIT = 200
NAME_PROMPT_LIMIT = 80


class CodexSessionService:
    """Discovers Codex sessions from the last week of date-bucketed logs."""

    agent_type = AgentType.CODEX

    def __init__(self, codex_dir: str | Path | None = None, clock: Callable[[], float] = time.time):
        self._codex_dir = Path(codex_dir).expanduser() if codex_dir else CODEX_DIR
        self._clock = clock
        self._rate_limit_cache: tuple[str, int, RateLimitSnapshot | None] | None = None

    @property
    def sessions_dir(self) -> Path:
        return self._codex_dir / "sessions"

    def recent_date_directories(self, today: date | None = None) -> list[Path]:
        """sessions/YYYY/MM/DD for today and the preceding days, newest first."""
        if today is None:
            today = datetime.fromtimestamp(self._clock()).date()
        dirs = []
        for offset in range(RECENT_DAYS):
            day = today - timedelta(days=offset)
            dirs.append(self.sessions_dir / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}")
        return dirs

    def discover(self, show_all: bool, show_sidechains: bool) -> list[Session]:
        if not self.sessions_dir.is_dir():
            return []

        now_ms = int(self._clock() * 1000)
        sessions = []
        for log_file in self._recent_log_files():
            session = self._parse_session_file(log_file, now_ms)
            if session is None:
                continue
            if not show_sidechains and session.is_sidechain:
                continue
            if not show_all and session.status != SessionStatus.RUNNING:
                continue
            sessions.append(session)

        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return sessions

    def _recent_log_files(self) -> list[Path]:
        files = []
        for date_dir in self.recent_date_directories():
            if not date_dir.is_dir():
                continue
            try:
                files.extend(sorted(
                    p for p in date_dir.glob("*.jsonl")
                    if not p.name.startswith(".")
                ))
            except OSError as e:
                logger.warning("Failed to list %s: %s", date_dir, e)
        return files

    def _parse_session_file(self, log_file: Path, now_ms: int) -> Session | None:
        try:
            lines = read_head_objects(log_file, HEAD_SCAN_BYTES, HEAD_SCAN_LINES)
            mtime = file_mtime_ms(log_file)
        except OSError as e:
            logger.warning("Cannot read %s: %s", log_file, e)
            return None

        session_id = None
        timestamp = None
        cwd = None
        git_branch = None
        is_sidechain = False
        model = None
        first_prompt = None

        for raw in lines:
            payload = raw.get("payload")
            if not isinstance(payload, dict):
                continue
            line_type = raw.get("type")

            if line_type == "session_meta":
                session_id = payload.get("id")
                timestamp = payload.get("timestamp")
                cwd = payload.get("cwd")
                git = payload.get("git")
                if isinstance(git, dict):
                    git_branch = git.get("branch")
                if "source" in payload:
                    # Only interactive CLI sessions are primary; exec/IDE/subagent
                    # sources arrive as other strings or as objects.
                    source = payload["source"]
                    is_sidechain = not (isinstance(source, str) and source == "cli")

            elif line_type == "turn_context":
                if model is None and isinstance(payload.get("model"), str):
                    model = payload["model"]

            elif line_type == "response_item":
                if first_prompt is None:
                    first_prompt = extract_codex_user_text(payload, PROMPT_PREVIEW_LIMIT)

        if not isinstance(session_id, str) or not session_id:
            logger.warning("No session_meta in %s", log_file.name)
            return None

        started_at = parse_iso8601(timestamp) or datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)
        is_running = now_ms - mtime < RECENT_WINDOW_S * 1000
        status = SessionStatus.RUNNING if is_running else SessionStatus.COMPLETED
        if first_prompt:
            name = truncate(first_prompt, NAME_PROMPT_LIMIT)
        else:
            name = f"Codex session {session_id[:8]}"

        return Session(
            id=session_uuid_or_random(session_id),
            name=name,
            status=status,
            agent_type=AgentType.CODEX,
            started_at=started_at,
            ended_at=None if is_running else datetime_from_ms(mtime),
            metrics=SessionMetrics(model_name=model or ""),
            project_path=cwd if isinstance(cwd, str) else None,
            git_branch=git_branch if isinstance(git_branch, str) else None,
            first_prompt=first_prompt,
            is_sidechain=is_sidechain,
            file_mtime=mtime,
            jsonl_path=str(log_file),
        )

    def fetch_rate_limits(self) -> RateLimitSnapshot | None:
        """Rate limits from the most relevant recent log.

        Prefers the most recently modified running session, falling back to
        the most recently modified log of the week. The parsed outcome, None
        included, is reused while that file's mtime is unchanged.
        """
        if not self.sessions_dir.is_dir():
            return None

        now_ms = int(self._clock() * 1000)
        running: tuple[int, Path] | None = None
        fallback: tuple[int, Path] | None = None

        for log_file in self._recent_log_files():
            try:
                mtime = file_mtime_ms(log_file)
            except OSError:
                continue
            if now_ms - mtime < RECENT_WINDOW_S * 1000:
                if running is None or mtime > running[0]:
                    running = (mtime, log_file)
            elif fallback is None or mtime > fallback[0]:
                fallback = (mtime, log_file)

        chosen = running or fallback
        if chosen is None:
            return None
        mtime, log_file = chosen

        cached = self._rate_limit_cache
        if cached is not None and cached[0] == str(log_file) and cached[1] == mtime:
            return cached[2]

        result = calculate_codex(log_file)
        snapshot = result.rate_limits if result is not None else None
        # None outcomes are cached as well
        self._rate_limit_cache = (str(log_file), mtime, snapshot)
        return snapshot
