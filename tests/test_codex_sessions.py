"""Tests for agents_monitor.services.codex_sessions."""

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from agents_monitor.services.codex_sessions import CodexSessionService
from agents_monitor.types import AgentType, SessionStatus
from helpers import (
    NOW_MS,
    codex_meta_line,
    codex_token_count,
    codex_turn_context,
    codex_user_item,
    fixed_clock,
    set_mtime_ms,
    write_jsonl,
)

TODAY = datetime.fromtimestamp(NOW_MS / 1000).date()

RATE_LIMITS = {
    "primary": {"used_percent": 30.0, "resets_at": 1760003600},
    "secondary": {"used_percent": 12.0, "resets_at": 1760500000},
}


def _day_dir(codex_dir, day: date):
    return codex_dir / "sessions" / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}"


def _write_session(codex_dir, name, lines, day=TODAY, mtime_ms=None):
    return write_jsonl(_day_dir(codex_dir, day) / name, lines, mtime_ms=mtime_ms)


@pytest.fixture
def service(codex_dir):
    return CodexSessionService(codex_dir, clock=fixed_clock())


class TestCodexDiscovery:
    def test_session_meta_becomes_session(self, service, codex_dir):
        _write_session(codex_dir, "rollout-a.jsonl", [
            codex_meta_line(),
            codex_turn_context("gpt-5-codex"),
            codex_user_item("Refactor the payment client"),
        ], mtime_ms=NOW_MS - 60_000)

        sessions = service.discover(show_all=True, show_sidechains=False)
        assert len(sessions) == 1
        s = sessions[0]
        assert s.id == uuid.UUID("0199a1b2-c3d4-7e5f-8a9b-0c1d2e3f4a5b")
        assert s.agent_type == AgentType.CODEX
        assert s.name == "Refactor the payment client"
        assert s.first_prompt == "Refactor the payment client"
        assert s.project_path == "/home/wiz/projects/api"
        assert s.git_branch == "feature/x"
        assert s.metrics.model_name == "gpt-5-codex"
        assert s.status == SessionStatus.RUNNING
        assert s.file_mtime == NOW_MS - 60_000

    def test_system_text_skipped_for_prompt(self, service, codex_dir):
        _write_session(codex_dir, "a.jsonl", [
            codex_meta_line(),
            codex_user_item("<environment_context>cwd</environment_context>"),
            codex_user_item("# AGENTS.md instructions"),
            codex_user_item("You are a coding agent"),
            codex_user_item("  " + "y" * 300),
        ])
        s = service.discover(True, False)[0]
        assert s.name == "y" * 80
        assert s.first_prompt == "y" * 200

    def test_short_prompt_used_whole_as_name(self, service, codex_dir):
        _write_session(codex_dir, "a.jsonl", [codex_meta_line(), codex_user_item("x" * 80)])
        assert service.discover(True, False)[0].name == "x" * 80

    def test_fallback_name(self, service, codex_dir):
        _write_session(codex_dir, "a.jsonl", [codex_meta_line()])
        assert service.discover(True, False)[0].name == "Codex session 0199a1b2"

    @pytest.mark.parametrize("timestamp", [None, "not a date"])
    def test_unparseable_start_uses_clock(self, service, codex_dir, timestamp):
        _write_session(codex_dir, "a.jsonl", [codex_meta_line(timestamp=timestamp)])
        s = service.discover(True, False)[0]
        assert s.started_at == datetime.fromtimestamp(NOW_MS / 1000, tz=timezone.utc)

    def test_non_uuid_id_remapped_from_hex(self, service, codex_dir):
        _write_session(codex_dir, "a.jsonl", [
            codex_meta_line(session_id="0199a1b2c3d47e5f8a9b0c1d2e3f4a5b-extra"),
        ])
        s = service.discover(True, False)[0]
        assert s.id == uuid.UUID("0199a1b2-c3d4-7e5f-8a9b-0c1d2e3f4a5b")

    def test_file_without_meta_skipped(self, service, codex_dir):
        _write_session(codex_dir, "a.jsonl", [codex_turn_context(), codex_token_count(1, 0, 1)])
        assert service.discover(True, True) == []

    def test_running_boundary_is_exclusive(self, service, codex_dir):
        _write_session(codex_dir, "old.jsonl", [codex_meta_line(session_id=str(uuid.UUID(int=1)))],
                       mtime_ms=NOW_MS - 1_800_000)
        _write_session(codex_dir, "new.jsonl", [codex_meta_line(session_id=str(uuid.UUID(int=2)))],
                       mtime_ms=NOW_MS - 1_799_999)
        statuses = {s.id.int: s for s in service.discover(True, False)}
        assert statuses[1].status == SessionStatus.COMPLETED
        assert statuses[1].ended_at is not None
        assert statuses[2].status == SessionStatus.RUNNING
        assert statuses[2].ended_at is None

    def test_show_all_false_keeps_running_only(self, service, codex_dir):
        _write_session(codex_dir, "old.jsonl", [codex_meta_line(session_id=str(uuid.UUID(int=1)))],
                       mtime_ms=NOW_MS - 7_200_000)
        _write_session(codex_dir, "new.jsonl", [codex_meta_line(session_id=str(uuid.UUID(int=2)))],
                       mtime_ms=NOW_MS - 1_000)
        assert [s.id.int for s in service.discover(False, False)] == [2]

    @pytest.mark.parametrize("source,is_sidechain", [
        ("cli", False),
        ("exec", True),
        ({"subagent": "review"}, True),
        (None, False),
    ])
    def test_source_classifies_sidechains(self, service, codex_dir, source, is_sidechain):
        _write_session(codex_dir, "a.jsonl", [codex_meta_line(source=source)])
        sessions = service.discover(True, True)
        assert sessions[0].is_sidechain is is_sidechain
        hidden = service.discover(True, False)
        assert len(hidden) == (0 if is_sidechain else 1)

    def test_only_last_seven_days_scanned(self, service, codex_dir):
        _write_session(codex_dir, "recent.jsonl", [codex_meta_line(session_id=str(uuid.UUID(int=1)))],
                       day=TODAY - timedelta(days=6))
        _write_session(codex_dir, "stale.jsonl", [codex_meta_line(session_id=str(uuid.UUID(int=2)))],
                       day=TODAY - timedelta(days=7))
        assert [s.id.int for s in service.discover(True, True)] == [1]

    def test_recent_date_directories(self, service, codex_dir):
        dirs = service.recent_date_directories(date(2026, 3, 2))
        assert len(dirs) == 7
        assert dirs[0] == codex_dir / "sessions" / "2026" / "03" / "02"
        assert dirs[1] == codex_dir / "sessions" / "2026" / "03" / "01"
        assert dirs[2] == codex_dir / "sessions" / "2026" / "02" / "28"

    def test_missing_sessions_dir(self, tmp_path):
        service = CodexSessionService(tmp_path / "nowhere", clock=fixed_clock())
        assert service.discover(True, True) == []
        assert service.fetch_rate_limits() is None


class TestRateLimits:
    def test_prefers_running_session(self, service, codex_dir):
        _write_session(codex_dir, "running.jsonl", [
            codex_meta_line(), codex_token_count(10, 0, 10, rate_limits=RATE_LIMITS),
        ], mtime_ms=NOW_MS - 1_000)
        _write_session(codex_dir, "done.jsonl", [
            codex_meta_line(),
            codex_token_count(10, 0, 10, rate_limits={
                "primary": {"used_percent": 99.0}, "secondary": {"used_percent": 99.0},
            }),
        ], mtime_ms=NOW_MS - 7_200_000)
        limits = service.fetch_rate_limits()
        assert limits.primary.percent == pytest.approx(30.0)
        assert limits.secondary.percent == pytest.approx(12.0)

    def test_falls_back_to_newest_file(self, service, codex_dir):
        _write_session(codex_dir, "older.jsonl", [
            codex_token_count(10, 0, 10, rate_limits={
                "primary": {"used_percent": 99.0}, "secondary": {"used_percent": 99.0},
            }),
        ], mtime_ms=NOW_MS - 9_000_000)
        _write_session(codex_dir, "newer.jsonl", [
            codex_token_count(10, 0, 10, rate_limits=RATE_LIMITS),
        ], mtime_ms=NOW_MS - 7_200_000)
        assert service.fetch_rate_limits().primary.percent == pytest.approx(30.0)

    def test_result_reused_while_mtime_unchanged(self, service, codex_dir, monkeypatch):
        path = _write_session(codex_dir, "a.jsonl", [
            codex_token_count(10, 0, 10, rate_limits=RATE_LIMITS),
        ], mtime_ms=NOW_MS - 1_000)
        first = service.fetch_rate_limits()

        calls = []
        import agents_monitor.services.codex_sessions as codex_sessions
        original = codex_sessions.calculate_codex
        monkeypatch.setattr(codex_sessions, "calculate_codex",
                            lambda p: calls.append(p) or original(p))

        assert service.fetch_rate_limits() is first
        assert calls == []

        set_mtime_ms(path, NOW_MS - 500)
        service.fetch_rate_limits()
        assert len(calls) == 1

    def test_no_rate_limits_in_log(self, service, codex_dir):
        _write_session(codex_dir, "a.jsonl", [codex_token_count(10, 0, 10)], mtime_ms=NOW_MS - 1_000)
        assert service.fetch_rate_limits() is None

    def test_missing_result_reused_while_mtime_unchanged(self, service, codex_dir, monkeypatch):
        path = _write_session(codex_dir, "a.jsonl", [codex_token_count(10, 0, 10)],
                              mtime_ms=NOW_MS - 1_000)
        calls = []
        import agents_monitor.services.codex_sessions as codex_sessions
        original = codex_sessions.calculate_codex
        monkeypatch.setattr(codex_sessions, "calculate_codex",
                            lambda p: calls.append(p) or original(p))

        assert service.fetch_rate_limits() is None
        assert service.fetch_rate_limits() is None
        assert len(calls) == 1

        set_mtime_ms(path, NOW_MS - 500)
        assert service.fetch_rate_limits() is None
        assert len(calls) == 2
