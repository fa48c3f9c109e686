from __future__ import annotations

import os
import sys

from PySide6.QtCore import QCoreApplication
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication

from pivoteditor.config import APP_ICON_PATH

ORG_ID = "osheet-tools"
APP_ID = "pivot-editor"

VISIBLE_APP_NAME = "Pivot Editor"


def create_app(argv: list[str] | None = None) -> QApplication:
    """Create and configure the QApplication instance (or reuse a running one)."""
    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")

    existing = QApplication.instance()
    if existing is not None:
        return existing

    QCoreApplication.setOrganizationName(ORG_ID)
    QCoreApplication.setApplicationName(APP_ID)

    app = QApplication(sys.argv if argv is None else argv)

    # Set the visible, translatable display name
    visible_name = QCoreApplication.translate("App", VISIBLE_APP_NAME)
    app.setApplicationDisplayName(visible_name)

    if os.path.exists(APP_ICON_PATH):
        app.setWindowIcon(QIcon(APP_ICON_PATH))

    return app
