"""QAbstractListModel exposing discovered agent sessions."""

import time

from PySide6.QtCore import QAbstractListModel, QModelIndex, Qt

from agents_monitor.types import Session
from agents_monitor.utils.path_codec import project_display_name


class SessionModel(QAbstractListModel):
    """Exposes a list of Sessions to views, with per-row cost updates."""

    SessionIdRole = Qt.UserRole + 1
    NameRole = Qt.UserRole + 2
    StatusRole = Qt.UserRole + 3
    AgentTypeRole = Qt.UserRole + 4
    ProjectNameRole = Qt.UserRole + 5
    GitBranchRole = Qt.UserRole + 6
    TotalTokensRole = Qt.UserRole + 7
    CostRole = Qt.UserRole + 8
    ModelNameRole = Qt.UserRole + 9
    IsRunningRole = Qt.UserRole + 10
    IsSidechainRole = Qt.UserRole + 11
    RelativeTimeRole = Qt.UserRole + 12

    _METRIC_ROLES = [TotalTokensRole, CostRole, ModelNameRole]

    def __init__(self, parent=None):
        super().__init__(parent)
        self._sessions: list[Session] = []

    def roleNames(self):
        return {
            self.SessionIdRole: b"sessionId",
            self.NameRole: b"name",
            self.StatusRole: b"status",
            self.AgentTypeRole: b"agentType",
            self.ProjectNameRole: b"projectName",
            self.GitBranchRole: b"gitBranch",
            self.TotalTokensRole: b"totalTokens",
            self.CostRole: b"cost",
            self.ModelNameRole: b"modelName",
            self.IsRunningRole: b"isRunning",
            self.IsSidechainRole: b"isSidechain",
            self.RelativeTimeRole: b"relativeTime",
        }

    def rowCount(self, parent=QModelIndex()):
        return len(self._sessions)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid() or index.row() >= len(self._sessions):
            return None

        session = self._sessions[index.row()]

        if role == self.SessionIdRole:
            return str(session.id)
        elif role in (self.NameRole, Qt.DisplayRole):
            return session.name
        elif role == self.StatusRole:
            return session.status.value
        elif role == self.AgentTypeRole:
            return session.agent_type.display_name
        elif role == self.ProjectNameRole:
            return project_display_name(session.project_path or "")
        elif role == self.GitBranchRole:
            return session.git_branch or ""
        elif role == self.TotalTokensRole:
            return session.metrics.formatted_tokens
        elif role == self.CostRole:
            return session.metrics.formatted_cost
        elif role == self.ModelNameRole:
            return session.metrics.model_name
        elif role == self.IsRunningRole:
            return session.is_running
        elif role == self.IsSidechainRole:
            return session.is_sidechain
        elif role == self.RelativeTimeRole:
            return self._format_relative_time(session.started_at.timestamp())
        return None

    def set_sessions(self, sessions: list[Session]):
        """Replace the entire session list."""
        self.beginResetModel()
        self._sessions = list(sessions)
        self.endResetModel()

    def update_row(self, row: int, session: Session):
        """Swap in one session and notify views of its changed metrics."""
        if not 0 <= row < len(self._sessions):
            return
        self._sessions[row] = session
        index = self.index(row, 0)
        self.dataChanged.emit(index, index, self._METRIC_ROLES)

    @staticmethod
    def _format_relative_time(timestamp: float) -> str:
        """Format a timestamp as a human-readable relative time."""
        diff = time.time() - timestamp
        if diff < 60:
            return "just now"
        elif diff < 3600:
            return f"{int(diff / 60)}m ago"
        elif diff < 86400:
            return f"{int(diff / 3600)}h ago"
        else:
            return f"{int(diff / 86400)}d ago"
