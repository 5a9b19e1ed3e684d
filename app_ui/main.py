# =============================================================================
# NAV INDEX (search these tags)
# [NAV-00] Imports / constants
# [NAV-10] View pages
# [NAV-20] Host window
# [NAV-30] Event loop glue
# [NAV-99] main() entrypoint
# =============================================================================

# === [NAV-00] Imports / constants ============================================
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, Optional

from PyQt6 import QtCore, QtWidgets

from diagnostics.logging_setup import configure_logging
from message_bridge import MessageBridge, MessageEnvelope, topics
from view_state import ViewId, ViewStateContext, build_default_context

from .qt_surface import QtSurface

logger = logging.getLogger(__name__)

QT_PUMP_INTERVAL_S = 0.01
NOTICE_TIMEOUT_MS = 4000
_PAGE_TITLES = {
    ViewId.FORM: "Configure validation",
    ViewId.RESULTS: "Validation results",
    ViewId.COLLAPSED: "Inspector",
    ViewId.ISSUE_DETAILS: "Issue details",
    ViewId.OUT_OF_SCOPE_MODAL: "Not part of this run",
}


# === [NAV-10] View pages =====================================================
class ViewPage(QtWidgets.QWidget):
    """Placeholder page; the real screens are rendered by the plugin UI."""

    def __init__(self, view: ViewId, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self.view = view
        layout = QtWidgets.QVBoxLayout(self)
        title = QtWidgets.QLabel(_PAGE_TITLES[view])
        title.setStyleSheet("font-weight: bold;")
        layout.addWidget(title)
        self.detail = QtWidgets.QLabel("")
        self.detail.setWordWrap(True)
        layout.addWidget(self.detail, stretch=1)

    def show_data(self, data: Optional[Dict]) -> None:
        if not data:
            self.detail.setText("")
            return
        if self.view == ViewId.RESULTS:
            issues = data.get("issues") or []
            self.detail.setText(f"{len(issues)} issues in {data.get('scope') or 'selection'}")
        elif self.view == ViewId.ISSUE_DETAILS:
            issue = data.get("issue") or {}
            self.detail.setText(f"{issue.get('nodeName', '')}: {issue.get('message', '')}")
        elif self.view == ViewId.OUT_OF_SCOPE_MODAL:
            self.detail.setText(f"{data.get('nodeName') or data.get('nodeId') or 'This layer'} was not checked")
        else:
            self.detail.setText("")


# === [NAV-20] Host window ====================================================
class HostWindow(QtWidgets.QMainWindow):
    def __init__(self, bridge: MessageBridge) -> None:
        super().__init__()
        self.setWindowTitle("Token Audit")
        self._bridge = bridge
        self._pages: Dict[ViewId, ViewPage] = {}

        central = QtWidgets.QWidget()
        layout = QtWidgets.QVBoxLayout(central)
        nav_row = QtWidgets.QHBoxLayout()
        self.back_btn = QtWidgets.QPushButton("Back")
        self.back_btn.clicked.connect(lambda: self._send(topics.GO_BACK))
        nav_row.addWidget(self.back_btn)
        self.expand_btn = QtWidgets.QPushButton("Expand")
        self.expand_btn.clicked.connect(lambda: self._send(topics.EXPAND_VIEW))
        nav_row.addWidget(self.expand_btn)
        nav_row.addStretch(1)
        layout.addLayout(nav_row)

        self.stack = QtWidgets.QStackedWidget()
        for view in ViewId:
            page = ViewPage(view)
            self._pages[view] = page
            self.stack.addWidget(page)
        layout.addWidget(self.stack, stretch=1)
        self.setCentralWidget(central)

        self._sub_id = bridge.subscribe(topics.CHANNEL_UI, self._on_message)

    def _send(self, msg_type: str) -> None:
        self._bridge.post(topics.CHANNEL_CORE, msg_type, {}, source="ui")

    def _on_message(self, envelope: MessageEnvelope) -> None:
        if envelope.type == topics.VIEW_CHANGE:
            try:
                view = ViewId(envelope.get("view"))
            except ValueError:
                logger.warning("view-change for unknown view %r", envelope.get("view"))
                return
            page = self._pages[view]
            page.show_data(envelope.get("data"))
            self.stack.setCurrentWidget(page)
            self.expand_btn.setVisible(bool(envelope.get("collapsed")))
        elif envelope.type == topics.SHOW_LOADING:
            self.statusBar().showMessage(str(envelope.get("message") or "Loading..."))
        elif envelope.type == topics.HIDE_LOADING:
            self.statusBar().clearMessage()
        elif envelope.type == topics.NOTICE:
            self.statusBar().showMessage(str(envelope.get("message") or ""), NOTICE_TIMEOUT_MS)

    def closeEvent(self, event) -> None:
        self._bridge.unsubscribe(self._sub_id)
        super().closeEvent(event)


# === [NAV-30] Event loop glue ================================================
async def run_host(app: QtWidgets.QApplication, window: HostWindow, ctx: ViewStateContext) -> None:
    """Drive Qt from the asyncio loop so transitions and widgets share one thread."""
    await ctx.initialize()
    window.show()
    while window.isVisible():
        app.processEvents(QtCore.QEventLoop.ProcessEventsFlag.AllEvents)
        await asyncio.sleep(QT_PUMP_INTERVAL_S)
    await ctx.shutdown()


# === [NAV-99] main() entrypoint ==============================================
def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Token audit view-state host")
    parser.add_argument("--config", type=Path, default=None, help="Path to the app config JSON")
    args = parser.parse_args(argv)

    log_info = configure_logging()
    logger.info("logging to %s", log_info["log_path"])
    app = QtWidgets.QApplication(sys.argv[:1])
    bridge = MessageBridge()
    window = HostWindow(bridge)
    ctx = build_default_context(QtSurface(window), bridge=bridge, config_path=args.config)
    asyncio.run(run_host(app, window, ctx))
    return 0


if __name__ == "__main__":
    sys.exit(main())
