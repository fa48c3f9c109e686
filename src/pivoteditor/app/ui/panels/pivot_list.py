from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QLabel, QListWidget, QListWidgetItem, QMessageBox, QPushButton, QVBoxLayout, QWidget
)

from pivoteditor.app.state import EditSession
from pivoteditor.app.ui.panels.base import BasePanel
from pivoteditor.model.document import Document
from pivoteditor.model.pivot import UNNAMED_LABEL, display_name


def pivot_label(pivot_id: str, pivot: object) -> str:
    name = display_name(pivot) if isinstance(pivot, dict) else UNNAMED_LABEL
    return f"{pivot_id} — {name}"


class PivotListPanel(BasePanel):
    """
    Sidebar listing the pivots of the committed document, with Add / Delete.
    The current row always mirrors the session selection.
    """
    def __init__(self, session: EditSession, parent: QWidget | None = None) -> None:
        super().__init__(session, parent)

        layout = QVBoxLayout(self)
        layout.addWidget(QLabel(self.tr("Pivots:")))

        self.list_widget = QListWidget(self)
        self.list_widget.currentItemChanged.connect(self.on_current_item_changed)
        layout.addWidget(self.list_widget)

        self.btn_add = QPushButton(self.tr("Add pivot"), self)
        self.btn_add.clicked.connect(self.on_add_clicked)
        layout.addWidget(self.btn_add)

        self.btn_delete = QPushButton(self.tr("Delete pivot"), self)
        self.btn_delete.clicked.connect(self.on_delete_clicked)
        layout.addWidget(self.btn_delete)

        self.session.document_changed.connect(self.refresh)
        self.session.selection_changed.connect(self._sync_selection)

        self.refresh(self.session.document)

    def refresh(self, document: Optional[Document] = None) -> None:
        if document is None:
            document = self.session.document
        self.list_widget.blockSignals(True)
        try:
            self.list_widget.clear()
            for pivot_id, pivot in document.list():
                item = QListWidgetItem(pivot_label(pivot_id, pivot))
                item.setData(Qt.ItemDataRole.UserRole, pivot_id)
                self.list_widget.addItem(item)
        finally:
            self.list_widget.blockSignals(False)
        self._sync_selection(self.session.selected_id)
        self.btn_delete.setEnabled(self.session.selected_id is not None)

    def _sync_selection(self, pivot_id: Optional[str]) -> None:
        self.list_widget.blockSignals(True)
        try:
            self.list_widget.setCurrentRow(self._row_of(pivot_id))
        finally:
            self.list_widget.blockSignals(False)
        self.btn_delete.setEnabled(pivot_id is not None)

    def _row_of(self, pivot_id: Optional[str]) -> int:
        for row in range(self.list_widget.count()):
            if self.list_widget.item(row).data(Qt.ItemDataRole.UserRole) == pivot_id:
                return row
        return -1

    def on_current_item_changed(self, current: QListWidgetItem, previous: QListWidgetItem) -> None:
        if current is None:
            return
        pivot_id = current.data(Qt.ItemDataRole.UserRole)
        if pivot_id == self.session.selected_id:
            return
        if not self.session.select(pivot_id):
            # Switch refused (unsaved changes): put the highlight back.
            self._sync_selection(self.session.selected_id)

    def on_add_clicked(self) -> None:
        self.session.add_pivot()

    def on_delete_clicked(self) -> None:
        if self.session.selected_id is None:
            return
        reply = QMessageBox.question(
            self,
            self.tr("Delete pivot"),
            self.tr("Delete selected pivot?"),
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply == QMessageBox.StandardButton.Yes:
            self.session.delete_pivot()
