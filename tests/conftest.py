"""Shared test fixtures for Agents Monitor."""

import os
import sys
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication for tests that need Qt."""
    os.environ["QT_QPA_PLATFORM"] = "offscreen"
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv or ["test"])
    app.setOrganizationName("agents-monitor-tests")
    app.setApplicationName("agents-monitor-tests")
    yield app


@pytest.fixture
def config(qapp, tmp_path):
    """A ConfigManager with isolated QSettings."""
    from PySide6.QtCore import QSettings
    from agents_monitor.services.config_manager import ConfigManager

    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path / "config"))
    manager = ConfigManager()
    manager._settings.clear()
    return manager


@pytest.fixture
def claude_dir(tmp_path) -> Path:
    """Create a temporary ~/.claude directory with one project."""
    root = tmp_path / ".claude"
    (root / "projects" / "-home-wiz-projects-myapp").mkdir(parents=True)
    return root


@pytest.fixture
def project_dir(claude_dir) -> Path:
    return claude_dir / "projects" / "-home-wiz-projects-myapp"


@pytest.fixture
def codex_dir(tmp_path) -> Path:
    """Create a temporary ~/.codex/sessions directory."""
    root = tmp_path / ".codex"
    (root / "sessions").mkdir(parents=True)
    return root


@pytest.fixture
def cache_path(tmp_path) -> Path:
    return tmp_path / "cache" / "token-cost-cache.json"
