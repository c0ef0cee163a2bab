"""Application entry point: headless monitor loop."""

import logging
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from agents_monitor.models.session_model import SessionModel
from agents_monitor.services.config_manager import ConfigManager
from agents_monitor.services.session_store import SessionStore
from agents_monitor.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def _log_status(store: SessionStore):
    limits = store.rate_limits
    rate = ""
    if limits is not None:
        rate = f", codex limits {limits.primary.percent:.0f}%/{limits.secondary.percent:.0f}%"
    logger.info(
        "%d sessions (%d running), %d tokens, $%.4f%s",
        len(store.sessions), len(store.running_sessions),
        store.total_tokens, store.total_cost, rate,
    )


def _log_error(store: SessionStore):
    if store.error:
        logger.error("%s", store.error)


def run() -> int:
    """Launch the monitor."""
    app = QCoreApplication(sys.argv)
    app.setApplicationName("Agents Monitor")
    app.setOrganizationName("agents-monitor")
    app.setOrganizationDomain("agents-monitor.local")

    # Allow Ctrl+C to kill the app
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    config = ConfigManager()
    setup_logging(
        log_file=config.get_string("advanced/logFile"),
        debug=config.get_bool("advanced/debugLogging"),
    )

    store = SessionStore(config=config)
    session_model = SessionModel()

    # Wire signals: store -> model
    store.sessions_changed.connect(
        lambda: session_model.set_sessions(store.sessions)
    )
    store.session_updated.connect(
        lambda row: session_model.update_row(row, store.sessions[row])
    )
    store.costs_updated.connect(lambda: _log_status(store))
    store.error_changed.connect(lambda: _log_error(store))

    refresh_timer = QTimer()
    refresh_timer.setInterval(max(config.get_int("general/refreshInterval"), 1000))
    refresh_timer.timeout.connect(store.refresh)
    refresh_timer.start()

    # Initial discovery
    store.refresh()

    ret = app.exec()
    refresh_timer.stop()
    store.cleanup()
    return ret
