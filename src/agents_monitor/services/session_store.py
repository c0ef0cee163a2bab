"""Central session store: discovery, cached costs and background recomputation."""

import logging
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from PySide6.QtCore import QCoreApplication, QObject, Property, QThread, Signal, Slot

from agents_monitor.services.claude_sessions import ClaudeSessionService
from agents_monitor.services.codex_sessions import CodexSessionService
from agents_monitor.services.config_manager import (
    CLAUDE_ENABLED_KEY,
    CODEX_ENABLED_KEY,
    ConfigManager,
)
from agents_monitor.services.cost_cache import CostCache
from agents_monitor.services.discovery import RateLimitSource, SessionSource, calculator_for
from agents_monitor.types import AgentType, RateLimitSnapshot, Session, SessionStatus

logger = logging.getLogger(__name__)


class _CostWorker(QThread):
    """Background thread computing summaries for logs missing from the cost cache.

    Logs are parsed one at a time. Cancellation is checked between logs; a
    parse in progress finishes but its result is dropped.
    """

    summary_ready = Signal(int, str, object, object)  # generation, path, mtime, summary
    rate_limits_ready = Signal(int, object)  # generation, RateLimitSnapshot | None
    batch_finished = Signal(int, int)  # generation, computed count

    def __init__(
        self,
        generation: int,
        jobs: list[tuple[str, int, AgentType]],
        rate_limit_sources: list[RateLimitSource],
        parent=None,
    ):
        super().__init__(parent)
        self._generation = generation
        self._jobs = jobs
        self._rate_limit_sources = rate_limit_sources
        self._cancelled = threading.Event()

    @property
    def generation(self) -> int:
        return self._generation

    def cancel(self):
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(self):
        computed = 0
        for path, mtime, agent_type in self._jobs:
            if self._cancelled.is_set():
                break
            try:
                summary = calculator_for(agent_type)(path)
            except Exception:
                logger.exception("Cost calculation failed for %s", path)
                continue
            if summary is None or self._cancelled.is_set():
                continue
            self.summary_ready.emit(self._generation, path, mtime, summary)
            computed += 1

        for source in self._rate_limit_sources:
            if self._cancelled.is_set():
                break
            try:
                snapshot = source.fetch_rate_limits()
            except Exception:
                logger.exception("Rate limit lookup failed")
                continue
            if snapshot is not None:
                self.rate_limits_ready.emit(self._generation, snapshot)
                break

        self.batch_finished.emit(self._generation, computed)


class SessionStore(QObject):
    """Owns the published session list.

    refresh() publishes discovered sessions at once with any valid cached
    costs applied, then fills in the rest from a background worker. Each
    refresh starts a new generation; results from an older generation are
    discarded on arrival.
    """

    sessions_changed = Signal()
    session_updated = Signal(int)  # row
    totals_changed = Signal()
    costs_updated = Signal()
    rate_limits_changed = Signal()
    loading_changed = Signal()
    error_changed = Signal()
    selection_changed = Signal()

    def __init__(
        self,
        parent=None,
        *,
        config: ConfigManager | None = None,
        cost_cache: CostCache | None = None,
        sources: dict[str, SessionSource] | None = None,
        cache_path=None,
    ):
        super().__init__(parent)
        self._config = config if config is not None else ConfigManager(self)
        if cost_cache is None:
            cost_cache = CostCache(cache_path)
            cost_cache.load()
        self._cost_cache = cost_cache
        if sources is None:
            sources = {
                CLAUDE_ENABLED_KEY: ClaudeSessionService(self._config.claude_dir()),
                CODEX_ENABLED_KEY: CodexSessionService(self._config.codex_dir()),
            }
        self._sources = sources

        self._sessions: list[Session] = []
        self._selected_id: uuid.UUID | None = None
        self._rate_limits: RateLimitSnapshot | None = None
        self._loading = False
        self._error = ""

        self._generation = 0
        self._worker: _CostWorker | None = None
        self._retired_workers: list[_CostWorker] = []
        self._cache_dirty = False

    # ------------------------------------------------------------------
    # Qt properties
    # ------------------------------------------------------------------

    def _get_loading(self) -> bool:
        return self._loading

    def _set_loading(self, value: bool):
        if self._loading != value:
            self._loading = value
            self.loading_changed.emit()

    loading = Property(bool, _get_loading, notify=loading_changed)

    def _get_error(self) -> str:
        return self._error

    def _set_error(self, value: str):
        if self._error != value:
            self._error = value
            self.error_changed.emit()

    error = Property(str, _get_error, notify=error_changed)

    def _get_session_count(self) -> int:
        return len(self._sessions)

    sessionCount = Property(int, _get_session_count, notify=sessions_changed)

    def _get_total_cost(self) -> float:
        return self.total_cost

    totalCost = Property(float, _get_total_cost, notify=totals_changed)

    def _get_total_tokens(self) -> int:
        return self.total_tokens

    # Token totals can exceed 32 bits
    totalTokens = Property("qlonglong", _get_total_tokens, notify=totals_changed)

    # ------------------------------------------------------------------
    # Read access and derived views
    # ------------------------------------------------------------------

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def cost_cache(self) -> CostCache:
        return self._cost_cache

    @property
    def rate_limits(self) -> RateLimitSnapshot | None:
        return self._rate_limits

    @property
    def running_sessions(self) -> list[Session]:
        return [s for s in self._sessions if s.status == SessionStatus.RUNNING]

    @property
    def active_sessions(self) -> list[Session]:
        return [s for s in self._sessions
                if s.status in (SessionStatus.RUNNING, SessionStatus.WAITING)]

    @property
    def completed_sessions(self) -> list[Session]:
        return [s for s in self._sessions if s.status == SessionStatus.COMPLETED]

    @property
    def failed_sessions(self) -> list[Session]:
        return [s for s in self._sessions if s.status == SessionStatus.FAILED]

    @property
    def waiting_sessions(self) -> list[Session]:
        return [s for s in self._sessions if s.status == SessionStatus.WAITING]

    @property
    def total_tokens(self) -> int:
        return sum(s.metrics.total_tokens for s in self._sessions)

    @property
    def total_cost(self) -> float:
        return sum(s.metrics.cost for s in self._sessions)

    def total_runtime(self, as_of: datetime | None = None) -> float:
        """Summed session durations in seconds; open sessions run until ``as_of``/now."""
        now = as_of or datetime.now(timezone.utc)
        return sum(s.duration(now) for s in self._sessions)

    def average_duration(self, as_of: datetime | None = None) -> float:
        if not self._sessions:
            return 0.0
        return self.total_runtime(as_of) / len(self._sessions)

    def session_for_id(self, session_id: uuid.UUID | str) -> Session | None:
        if isinstance(session_id, str):
            try:
                session_id = uuid.UUID(session_id)
            except ValueError:
                return None
        for session in self._sessions:
            if session.id == session_id:
                return session
        return None

    @property
    def selected_session(self) -> Session | None:
        if self._selected_id is None:
            return None
        return self.session_for_id(self._selected_id)

    @Slot(str)
    def select_session(self, session_id: str):
        session = self.session_for_id(session_id)
        new_id = session.id if session is not None else None
        if new_id != self._selected_id:
            self._selected_id = new_id
            self.selection_changed.emit()

    @Slot()
    def clear_error(self):
        self._set_error("")

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    @Slot()
    def refresh(self):
        """Rediscover sessions, publish them, and recompute uncached costs in the background."""
        self._set_loading(True)
        try:
            discovered = self._discover_all()
            if discovered is None:
                return

            discovered.sort(key=lambda s: s.started_at, reverse=True)
            for session in discovered:
                cached = self._cost_cache.lookup(session.jsonl_path, session.file_mtime)
                if cached is not None:
                    session.apply_summary(cached)

            self._generation += 1
            self._publish(discovered)
            self._set_error("")
            self._start_cost_worker(self._generation, discovered)
        finally:
            self._set_loading(False)

    def _discover_all(self) -> list[Session] | None:
        """Run every enabled source concurrently.

        Returns None only when every enabled source raised.
        """
        enabled = [
            source for key, source in self._sources.items()
            if self._config.source_enabled(key)
        ]
        if not enabled:
            return []

        show_all = self._config.show_all
        show_sidechains = self._config.show_sidechains
        discovered: list[Session] = []
        failures = []

        with ThreadPoolExecutor(max_workers=len(enabled)) as pool:
            futures = {
                pool.submit(source.discover, show_all, show_sidechains): source
                for source in enabled
            }
            for future, source in futures.items():
                try:
                    discovered.extend(future.result())
                except Exception as e:
                    logger.exception("Session discovery failed for %s", source.agent_type.value)
                    failures.append(f"{source.agent_type.display_name}: {e}")

        if failures and len(failures) == len(enabled):
            self._set_error("Failed to discover sessions (" + "; ".join(failures) + ")")
            return None
        return discovered

    def _publish(self, sessions: list[Session]):
        self._sessions = sessions
        self.sessions_changed.emit()
        self.totals_changed.emit()
        if self._selected_id is not None and self.session_for_id(self._selected_id) is None:
            self._selected_id = None
            self.selection_changed.emit()

    def _start_cost_worker(self, generation: int, sessions: list[Session]):
        self._cancel_worker()

        jobs = []
        queued: set[str] = set()
        for session in sessions:
            path = session.jsonl_path
            if path in queued:
                continue
            if self._cost_cache.lookup(path, session.file_mtime) is not None:
                continue
            queued.add(path)
            jobs.append((path, session.file_mtime, session.agent_type))

        rate_limit_sources = [
            source for key, source in self._sources.items()
            if self._config.source_enabled(key) and isinstance(source, RateLimitSource)
        ]

        if not jobs and not rate_limit_sources:
            self._persist_if_dirty()
            return

        logger.debug("Generation %d: computing costs for %d sessions", generation, len(jobs))
        worker = _CostWorker(generation, jobs, rate_limit_sources, self)
        worker.summary_ready.connect(self._on_summary_ready)
        worker.rate_limits_ready.connect(self._on_rate_limits_ready)
        worker.batch_finished.connect(self._on_batch_finished)
        worker.finished.connect(worker.deleteLater)
        self._worker = worker
        worker.start()

    def _cancel_worker(self):
        """Signal the running worker to stop after its current log. Does not block."""
        if self._worker is not None:
            self._worker.cancel()
            self._retired_workers.append(self._worker)
            self._worker = None

    def _on_summary_ready(self, generation: int, path: str, mtime: int, summary):
        if generation != self._generation:
            logger.debug("Dropping stale summary for %s from generation %d", path, generation)
            return
        self._cost_cache.store(path, mtime, summary)
        self._cache_dirty = True
        for row, session in enumerate(self._sessions):
            if session.jsonl_path == path and session.file_mtime == mtime:
                session.apply_summary(summary)
                self.session_updated.emit(row)
        self.totals_changed.emit()

    def _on_rate_limits_ready(self, generation: int, snapshot):
        if generation != self._generation:
            return
        self._rate_limits = snapshot
        self.rate_limits_changed.emit()

    def _on_batch_finished(self, generation: int, computed: int):
        self._persist_if_dirty()
        if self._worker is not None and self._worker.generation == generation:
            self._worker = None
        self._retired_workers = [w for w in self._retired_workers if w.generation != generation]
        if generation == self._generation:
            logger.debug("Generation %d: %d summaries computed", generation, computed)
            self.costs_updated.emit()

    def _persist_if_dirty(self):
        if self._cache_dirty:
            self._cost_cache.persist()
            self._cache_dirty = False

    # ------------------------------------------------------------------
    # Reset and lifecycle
    # ------------------------------------------------------------------

    @Slot()
    def clear_all(self):
        """Forget every session and wipe the cost cache, in memory and on disk."""
        self._generation += 1
        self._cancel_worker()
        self._cache_dirty = False
        self._cost_cache.clear()
        self._rate_limits = None
        if self._selected_id is not None:
            self._selected_id = None
            self.selection_changed.emit()
        self._sessions = []
        self.sessions_changed.emit()
        self.totals_changed.emit()

    def wait_for_costs(self, timeout_ms: int = 5000):
        """Block until background workers finish and deliver their queued results."""
        workers = list(self._retired_workers)
        if self._worker is not None:
            workers.append(self._worker)
        for worker in workers:
            worker.wait(timeout_ms)
        QCoreApplication.processEvents()

    def cleanup(self):
        """Stop background work and flush the cost cache."""
        self._cancel_worker()
        for worker in list(self._retired_workers):
            worker.wait(2000)
        QCoreApplication.processEvents()
        self._persist_if_dirty()
