"""Claude Code session discovery from ~/.claude/projects."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import orjson

from agents_monitor.services.jsonl_reader import read_head_objects
from agents_monitor.types import AgentType, Session, SessionMetrics, SessionStatus
from agents_monitor.utils.content_sanitizer import extract_claude_user_text, truncate
from agents_monitor.utils.path_codec import decode_project_dir
from agents_monitor.utils.session_ids import parse_session_uuid
from agents_monitor.utils.timestamps import (
    datetime_from_ms,
    file_mtime_ms,
    format_iso8601,
    parse_iso8601,
)

logger = logging.getLogger(__name__)

CLAUDE_DIR = Path.home() / ".claude"
INDEX_FILE_NAME = "sessions-index.json"

# Sessions whose log was written within this window are considered running.
# There is no reliable way to tie a CLI process to a log file, so recency is
# the only signal.
RECENT_WINDOW_S = 120

# Lightweight scan limits for logs missing from the index
HEAD_SCAN_BYTES = 32 * 1024
HEAD_SCAN_LINES = 30

NAME_PROMPT_LIMIT = 80


@dataclass
class ClaudeSessionEntry:
    """One session as listed in sessions-index.json (or recovered from its log)."""
    session_id: str
    full_path: str
    file_mtime: int
    created: str
    modified: str
    message_count: int = 0
    first_prompt: Optional[str] = None
    summary: Optional[str] = None
    git_branch: Optional[str] = None
    project_path: Optional[str] = None
    is_sidechain: bool = False

    @property
    def session_name(self) -> str:
        if self.summary:
            return self.summary
        if self.first_prompt:
            return truncate(self.first_prompt, NAME_PROMPT_LIMIT)
        return f"Session {self.session_id[:8]}"

    @classmethod
    def from_index_dict(cls, data) -> "ClaudeSessionEntry":
        """Decode one index entry. Raises ValueError on a malformed entry."""
        if not isinstance(data, dict):
            raise ValueError("index entry is not an object")
        try:
            entry = cls(
                session_id=data["sessionId"],
                full_path=data["fullPath"],
                file_mtime=data["fileMtime"],
                created=data["created"],
                modified=data["modified"],
                message_count=data["messageCount"],
                first_prompt=data.get("firstPrompt"),
                summary=data.get("summary"),
                git_branch=data.get("gitBranch"),
                project_path=data.get("projectPath"),
                is_sidechain=data["isSidechain"],
            )
        except KeyError as e:
            raise ValueError(f"index entry is missing {e.args[0]}") from e

        for name in ("session_id", "full_path", "created", "modified"):
            if not isinstance(getattr(entry, name), str):
                raise ValueError(f"{name} must be a string")
        for name in ("file_mtime", "message_count"):
            value = getattr(entry, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer")
        if not isinstance(entry.is_sidechain, bool):
            raise ValueError("isSidechain must be a boolean")
        for name in ("first_prompt", "summary", "git_branch", "project_path"):
            if not isinstance(getattr(entry, name), (str, type(None))):
                setattr(entry, name, None)
        return entry


class ClaudeSessionService:
    """Discovers Claude Code sessions from project indexes and raw logs."""

    agent_type = AgentType.CLAUDE_CODE

    def __init__(self, claude_dir: str | Path | None = None, clock: Callable[[], float] = time.time):
        self._claude_dir = Path(claude_dir).expanduser() if claude_dir else CLAUDE_DIR
        self._clock = clock

    @property
    def projects_dir(self) -> Path:
        return self._claude_dir / "projects"

    def discover(self, show_all: bool, show_sidechains: bool) -> list[Session]:
        projects_dir = self.projects_dir
        if not projects_dir.is_dir():
            return []

        entries: list[ClaudeSessionEntry] = []
        known_ids: set[str] = set()

        try:
            project_dirs = sorted(
                p for p in projects_dir.iterdir()
                if p.is_dir() and not p.name.startswith(".")
            )
        except OSError:
            logger.exception("Failed to enumerate Claude projects in %s", projects_dir)
            return []

        for project_dir in project_dirs:
            for entry in self._read_index(project_dir / INDEX_FILE_NAME):
                entries.append(entry)
                known_ids.add(entry.session_id)

            for entry in self._scan_unindexed_logs(project_dir, known_ids):
                entries.append(entry)
                known_ids.add(entry.session_id)

        if not show_sidechains:
            entries = [e for e in entries if not e.is_sidechain]

        now_ms = int(self._clock() * 1000)
        sessions = []
        for entry in entries:
            session = self._to_session(entry, now_ms)
            if session is not None:
                sessions.append(session)

        if not show_all:
            sessions = [s for s in sessions if s.status == SessionStatus.RUNNING]

        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return sessions

    def _read_index(self, index_file: Path) -> list[ClaudeSessionEntry]:
        if not index_file.is_file():
            return []
        try:
            data = orjson.loads(index_file.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            logger.warning("Failed to parse %s: %s", index_file, e)
            return []

        raw_entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(raw_entries, list):
            logger.warning("Failed to parse %s: no entries list", index_file)
            return []

        entries = []
        for raw in raw_entries:
            try:
                entry = ClaudeSessionEntry.from_index_dict(raw)
            except ValueError as e:
                logger.warning("Skipping malformed entry in %s: %s", index_file, e)
                continue
            if not entry.project_path:
                entry.project_path = decode_project_dir(index_file.parent.name)
            entries.append(entry)
        return entries

    def _scan_unindexed_logs(self, project_dir: Path, known_ids: set[str]) -> list[ClaudeSessionEntry]:
        try:
            log_files = sorted(project_dir.glob("*.jsonl"))
        except OSError:
            return []

        entries = []
        for log_file in log_files:
            session_id = log_file.stem
            if session_id in known_ids:
                continue
            if parse_session_uuid(session_id) is None:
                continue
            entry = self._parse_log_metadata(log_file, session_id)
            if entry is not None:
                entries.append(entry)
        return entries

    def _parse_log_metadata(self, log_file: Path, session_id: str) -> ClaudeSessionEntry | None:
        """Recover index-style metadata from the head of a log file."""
        try:
            lines = read_head_objects(log_file, HEAD_SCAN_BYTES, HEAD_SCAN_LINES)
            mtime = file_mtime_ms(log_file)
        except OSError as e:
            logger.warning("Cannot read %s: %s", log_file, e)
            return None

        first_timestamp = None
        cwd = None
        git_branch = None
        is_sidechain = False
        first_prompt = None

        for raw in lines:
            if first_timestamp is None and isinstance(raw.get("timestamp"), str):
                first_timestamp = raw["timestamp"]
            if cwd is None and isinstance(raw.get("cwd"), str):
                cwd = raw["cwd"]
            if git_branch is None and isinstance(raw.get("gitBranch"), str):
                git_branch = raw["gitBranch"]
            if raw.get("isSidechain") is True:
                is_sidechain = True
            if first_prompt is None and raw.get("type") == "user":
                first_prompt = extract_claude_user_text(raw.get("message"))

        if first_timestamp is None:
            logger.warning("Skipping %s: no timestamp in the first %d lines", log_file.name, HEAD_SCAN_LINES)
            return None

        return ClaudeSessionEntry(
            session_id=session_id,
            full_path=str(log_file),
            file_mtime=mtime,
            created=first_timestamp,
            modified=format_iso8601(datetime_from_ms(mtime)),
            first_prompt=first_prompt,
            git_branch=git_branch,
            project_path=cwd or decode_project_dir(log_file.parent.name),
            is_sidechain=is_sidechain,
        )

    def _to_session(self, entry: ClaudeSessionEntry, now_ms: int) -> Session | None:
        started_at = parse_iso8601(entry.created)
        if started_at is None:
            logger.warning("Skipping session %s: unparseable date", entry.session_id)
            return None
        session_uuid = parse_session_uuid(entry.session_id)
        if session_uuid is None:
            logger.warning("Skipping session %s: invalid UUID", entry.session_id)
            return None

        # The index can lag behind the log; the cache key needs the real mtime.
        try:
            mtime = file_mtime_ms(entry.full_path)
        except OSError:
            mtime = entry.file_mtime

        is_running = now_ms - mtime < RECENT_WINDOW_S * 1000
        status = SessionStatus.RUNNING if is_running else SessionStatus.COMPLETED

        return Session(
            id=session_uuid,
            name=entry.session_name,
            status=status,
            agent_type=AgentType.CLAUDE_CODE,
            started_at=started_at,
            ended_at=None if is_running else datetime_from_ms(mtime),
            metrics=SessionMetrics(api_calls=entry.message_count),
            project_path=entry.project_path,
            git_branch=entry.git_branch,
            first_prompt=entry.first_prompt,
            summary=entry.summary,
            is_sidechain=entry.is_sidechain,
            file_mtime=mtime,
            jsonl_path=entry.full_path,
        )
