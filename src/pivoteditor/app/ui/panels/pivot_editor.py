"""
Pivot Editor Panel
Form bound to the edit buffer of the session. Every user change becomes a
session.edit() call; Save / Discard map to commit() / discard().
"""
from __future__ import annotations

from typing import Any, Optional

from PySide6.QtWidgets import (
    QFormLayout, QGroupBox, QHBoxLayout, QLabel, QLineEdit, QPushButton,
    QScrollArea, QVBoxLayout, QWidget
)

from pivoteditor.app.state import EditSession
from pivoteditor.app.ui.panels.base import BasePanel
from pivoteditor.app.ui.widgets import JsonTextEdit, ListFieldEditor
from pivoteditor.model.pivot import PivotDefinition, PivotField, display_model


def _measure_to_text(measure: Any) -> str:
    if isinstance(measure, dict):
        return str(measure.get("field") or "")
    return "" if measure is None else str(measure)


def _measure_from_text(text: str, previous: Any) -> dict:
    measure = dict(previous) if isinstance(previous, dict) else {}
    measure["field"] = text
    return measure


class PivotEditorPanel(BasePanel):
    def __init__(self, session: EditSession, parent: QWidget | None = None) -> None:
        super().__init__(session, parent)

        root = QVBoxLayout(self)

        self.title = QLabel(self)
        root.addWidget(self.title)

        self.group = QGroupBox(self.tr("Pivot definition"), self)
        form = QFormLayout(self.group)

        self.edit_id = QLineEdit(self.group)
        self.edit_id.editingFinished.connect(self.on_id_changed)
        form.addRow(self.tr("Id:"), self.edit_id)

        self.edit_name = QLineEdit(self.group)
        self.edit_name.textEdited.connect(lambda text: self._edit(PivotField.NAME, text))
        form.addRow(self.tr("Name:"), self.edit_name)

        self.edit_model = QLineEdit(self.group)
        self.edit_model.textEdited.connect(lambda text: self._edit(PivotField.MODEL, text))
        form.addRow(self.tr("Model:"), self.edit_model)

        self.edit_domain = JsonTextEdit(self.group)
        self.edit_domain.valueEdited.connect(lambda value: self._edit(PivotField.DOMAIN, value))
        form.addRow(self.tr("Domain (JSON):"), self.edit_domain)

        self.edit_row_group_bys = ListFieldEditor(self.tr("Row group by"), parent=self.group)
        self.edit_row_group_bys.valuesEdited.connect(lambda values: self._edit(PivotField.ROW_GROUP_BYS, values))
        form.addRow(self.tr("Row group by:"), self.edit_row_group_bys)

        self.edit_measures = ListFieldEditor(
            self.tr("Field"), to_text=_measure_to_text, from_text=_measure_from_text, parent=self.group
        )
        self.edit_measures.valuesEdited.connect(lambda values: self._edit(PivotField.MEASURES, values))
        form.addRow(self.tr("Measures:"), self.edit_measures)

        self.edit_sorted_column = JsonTextEdit(self.group)
        self.edit_sorted_column.valueEdited.connect(lambda value: self._edit(PivotField.SORTED_COLUMN, value))
        form.addRow(self.tr("Sorted column (JSON):"), self.edit_sorted_column)

        scroller = QScrollArea(self)
        scroller.setWidget(self.group)
        scroller.setWidgetResizable(True)
        root.addWidget(scroller, 1)

        h_buttons = QHBoxLayout()
        h_buttons.addStretch()
        self.btn_discard = QPushButton(self.tr("Discard changes"), self)
        self.btn_discard.clicked.connect(self.session.discard)
        self.btn_save = QPushButton(self.tr("Save pivot"), self)
        self.btn_save.clicked.connect(self.session.commit)
        h_buttons.addWidget(self.btn_discard)
        h_buttons.addWidget(self.btn_save)
        root.addLayout(h_buttons)

        self.session.buffer_changed.connect(self.load_buffer)
        self.session.dirty_changed.connect(self._update_buttons)

        self.load_buffer(self.session.buffer)
        self._update_buttons(self.session.is_dirty)

    def load_buffer(self, buffer: Optional[PivotDefinition]) -> None:
        """Fill the form from the session buffer (None disables the form)."""
        if self.is_loading:
            return
        with self.loading():
            self.group.setEnabled(buffer is not None)
            pivot = buffer or {}
            pivot_id = pivot.get(PivotField.ID)
            self.title.setText(
                self.tr("Edit pivot: {0}").format(self.session.selected_id)
                if buffer is not None else self.tr("No pivots found.")
            )

            self._set_line(self.edit_id, "" if pivot_id is None else str(pivot_id))
            self._set_line(self.edit_name, str(pivot.get(PivotField.NAME) or ""))
            self._set_line(self.edit_model, str(display_model(pivot)))
            self.edit_domain.set_value(pivot.get(PivotField.DOMAIN) or [])
            self.edit_row_group_bys.set_values(pivot.get(PivotField.ROW_GROUP_BYS))
            self.edit_measures.set_values(pivot.get(PivotField.MEASURES))
            self.edit_sorted_column.set_value(pivot.get(PivotField.SORTED_COLUMN))

    @staticmethod
    def _set_line(line_edit: QLineEdit, text: str) -> None:
        # Keep the cursor where it is while the user types
        if line_edit.text() != text:
            line_edit.setText(text)

    def _edit(self, key: PivotField, value: Any) -> None:
        if self.is_loading:
            return
        with self.loading():
            self.session.edit({key: value})

    def on_id_changed(self) -> None:
        if self.is_loading or self.session.buffer is None:
            return
        new_id = self.edit_id.text().strip()
        current_id = self.session.buffer.get(PivotField.ID)
        if new_id == current_id:
            return
        if not self.session.edit({PivotField.ID: new_id}):
            # Rejected (empty or duplicate): revert
            self._set_line(self.edit_id, "" if current_id is None else str(current_id))

    def _update_buttons(self, dirty: bool) -> None:
        self.btn_save.setEnabled(dirty)
        self.btn_discard.setEnabled(dirty)
