"""
Small editing widgets used by the pivot editor form.
"""
from __future__ import annotations

import json
from typing import Any, Callable, List, Optional

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QHBoxLayout, QHeaderView, QLabel, QPlainTextEdit, QPushButton,
    QTableWidget, QTableWidgetItem, QVBoxLayout, QWidget
)


class JsonTextEdit(QWidget):
    """
    Free-form JSON value editor. `valueEdited` fires only for text that parses;
    invalid text while typing is ignored and flagged.
    """
    valueEdited = Signal(object)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._loading = False

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.editor = QPlainTextEdit(self)
        self.editor.setMinimumHeight(120)
        self.editor.textChanged.connect(self._on_text_changed)
        layout.addWidget(self.editor)

        self.error_label = QLabel(self.tr("Invalid JSON"), self)
        self.error_label.setStyleSheet("color: #b00020;")
        self.error_label.setVisible(False)
        layout.addWidget(self.error_label)

    def set_value(self, value: Any) -> None:
        self._loading = True
        try:
            text = json.dumps(value, indent=2, ensure_ascii=False)
            if text != self.editor.toPlainText():
                self.editor.setPlainText(text)
            self.error_label.setVisible(False)
        finally:
            self._loading = False

    def _on_text_changed(self) -> None:
        if self._loading:
            return
        try:
            value = json.loads(self.editor.toPlainText())
        except json.JSONDecodeError:
            self.error_label.setVisible(True)
            return
        self.error_label.setVisible(False)
        self.valueEdited.emit(value)


class ListFieldEditor(QWidget):
    """
    Ordered list shown as a one-column table with add/remove
    buttons. `to_text` turns an entry into cell text; `from_text` builds the
    entry back from the cell text and the previous entry, so measures can
    update "field" and keep any other keys.
    """
    valuesEdited = Signal(list)

    def __init__(
        self,
        header: str,
        to_text: Callable[[Any], str] = lambda value: "" if value is None else str(value),
        from_text: Callable[[str, Any], Any] = lambda text, previous: text,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._to_text = to_text
        self._from_text = from_text
        self._values: List[Any] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.table = QTableWidget(0, 1, self)
        self.table.setHorizontalHeaderLabels([header])
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        self.table.verticalHeader().setVisible(False)
        self.table.itemChanged.connect(self._on_item_changed)
        layout.addWidget(self.table)

        h_tools = QHBoxLayout()
        self.btn_add = QPushButton(self.tr("Add row"), self)
        self.btn_remove = QPushButton(self.tr("Remove row"), self)
        self.btn_add.clicked.connect(self.add_row)
        self.btn_remove.clicked.connect(self.remove_row)
        h_tools.addWidget(self.btn_add)
        h_tools.addWidget(self.btn_remove)
        h_tools.addStretch()
        layout.addLayout(h_tools)

    def values(self) -> List[Any]:
        return list(self._values)

    def set_values(self, values: Optional[List[Any]]) -> None:
        self._values = list(values) if isinstance(values, list) else []
        self.table.blockSignals(True)
        try:
            self.table.setRowCount(len(self._values))
            for row, value in enumerate(self._values):
                self.table.setItem(row, 0, QTableWidgetItem(self._to_text(value)))
        finally:
            self.table.blockSignals(False)

    def add_row(self) -> None:
        self._values.append(self._from_text("", None))
        self.set_values(self._values)
        self.valuesEdited.emit(self.values())

    def remove_row(self) -> None:
        if not self._values:
            return
        row = self.table.currentRow()
        if row < 0 or row >= len(self._values):
            row = len(self._values) - 1
        del self._values[row]
        self.set_values(self._values)
        self.valuesEdited.emit(self.values())

    def _on_item_changed(self, item: QTableWidgetItem) -> None:
        row = item.row()
        if row >= len(self._values):
            return
        self._values[row] = self._from_text(item.text(), self._values[row])
        self.valuesEdited.emit(self.values())
