"""Application configuration manager wrapping QSettings."""

import logging
from pathlib import Path

from PySide6.QtCore import QObject, Signal, Slot, QSettings

logger = logging.getLogger(__name__)

SHOW_ALL_KEY = "sessions/showAll"
SHOW_SIDECHAINS_KEY = "sessions/showSidechains"
CLAUDE_ENABLED_KEY = "sources/claudeEnabled"
CODEX_ENABLED_KEY = "sources/codexEnabled"

# Default values
DEFAULTS = {
    SHOW_ALL_KEY: True,
    SHOW_SIDECHAINS_KEY: False,
    CLAUDE_ENABLED_KEY: True,
    CODEX_ENABLED_KEY: True,
    "general/refreshInterval": 10000,
    "general/claudeDir": "~/.claude",
    "general/codexDir": "~/.codex",
    "advanced/debugLogging": False,
    "advanced/logFile": "",
}


class ConfigManager(QObject):
    """Centralized application settings."""

    settings_changed = Signal(str)  # key

    def __init__(self, parent=None):
        super().__init__(parent)
        self._settings = QSettings()

    @Slot(str, result=str)
    def get_string(self, key: str) -> str:
        return str(self._settings.value(key, DEFAULTS.get(key, "")))

    @Slot(str, result=int)
    def get_int(self, key: str) -> int:
        val = self._settings.value(key, DEFAULTS.get(key, 0))
        try:
            return int(val)
        except (ValueError, TypeError):
            return DEFAULTS.get(key, 0)

    @Slot(str, result=bool)
    def get_bool(self, key: str) -> bool:
        val = self._settings.value(key, DEFAULTS.get(key, False))
        if isinstance(val, bool):
            return val
        if isinstance(val, str):
            return val.lower() in ("true", "1", "yes")
        return bool(val)

    @Slot(str, str)
    def set_string(self, key: str, value: str):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, int)
    def set_int(self, key: str, value: int):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    @Slot(str, bool)
    def set_bool(self, key: str, value: bool):
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)

    # Session list preferences
    @property
    def show_all(self) -> bool:
        return self.get_bool(SHOW_ALL_KEY)

    @property
    def show_sidechains(self) -> bool:
        return self.get_bool(SHOW_SIDECHAINS_KEY)

    def source_enabled(self, key: str) -> bool:
        return self.get_bool(key)

    def claude_dir(self) -> Path:
        return Path(self.get_string("general/claudeDir")).expanduser()

    def codex_dir(self) -> Path:
        return Path(self.get_string("general/codexDir")).expanduser()
