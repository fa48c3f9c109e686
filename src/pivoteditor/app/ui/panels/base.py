from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from PySide6.QtWidgets import QWidget

from pivoteditor.app.state import EditSession


class BasePanel(QWidget):
    """
    Base class for the window panels. Holds the edit session and a guard that
    tells widget callbacks apart from the panel filling its own widgets.
    """
    def __init__(self, session: EditSession, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.session = session
        self._loading = False

    @property
    def is_loading(self) -> bool:
        return self._loading

    @contextmanager
    def loading(self) -> Iterator[None]:
        previous = self._loading
        self._loading = True
        try:
            yield
        finally:
            self._loading = previous
