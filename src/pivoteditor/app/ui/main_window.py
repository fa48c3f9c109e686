"""
Main Application Window
=======================
The primary GUI container: menu bar, pivot list on the left, pivot editor
on the right.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects global actions (File -> Open / Import / Export) to
   the IO layer and the edit session, and turns their errors into message
   boxes so a bad file never takes the application down.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCloseEvent
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox, QSplitter

from pivoteditor.app.application import VISIBLE_APP_NAME
from pivoteditor.app.state import EditSession, SwitchDecision
from pivoteditor.app.ui.panels import PivotEditorPanel, PivotListPanel
from pivoteditor.config import EditorConfig
from pivoteditor.model.document import Document
from pivoteditor.model.io import IOManager, ParseError, derive_export_filename
from pivoteditor.model.pivot import ValidationFailure

logger = logging.getLogger(__name__)

JSON_FILTER = "JSON Files (*.json)"


class MainWindow(QMainWindow):
    def __init__(self, config: Optional[EditorConfig] = None) -> None:
        super().__init__()
        self.config = config or EditorConfig()
        self.filepath: Optional[str] = None
        self.has_unexported_changes = False

        self.session = EditSession(config=self.config, prompt_handler=self.ask_unsaved_switch, parent=self)

        self.resize(1100, 750)

        # --- CONTENT AREA ---
        splitter = QSplitter(Qt.Orientation.Horizontal, self)
        self.list_panel = PivotListPanel(self.session, parent=splitter)
        self.editor_panel = PivotEditorPanel(self.session, parent=splitter)
        splitter.addWidget(self.list_panel)
        splitter.addWidget(self.editor_panel)
        splitter.setSizes([300, 800])
        self.setCentralWidget(splitter)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # --- CONNECTIONS ---
        self.session.dirty_changed.connect(self._on_dirty_changed)
        self.session.state_changed.connect(lambda *_: self._update_actions())
        self.session.document_changed.connect(self._on_document_changed)
        self.session.rejected.connect(self.on_rejected)

        self._on_dirty_changed(self.session.is_dirty)
        self._update_actions()
        self.statusBar().showMessage(self.tr("Open an .osheet.json file to start."))

    def _create_actions(self) -> None:
        # File Actions
        self.act_open = QAction(self.tr("Open..."), self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_import = QAction(self.tr("Import Pivots..."), self)
        self.act_import.setShortcut("Ctrl+I")
        self.act_import.triggered.connect(self.on_file_import)

        self.act_export = QAction(self.tr("Export..."), self)
        self.act_export.setShortcut("Ctrl+S")
        self.act_export.triggered.connect(self.on_file_export)

        self.act_exit = QAction(self.tr("Exit"), self)
        self.act_exit.triggered.connect(self.close)

        # Pivot Actions
        self.act_save_pivot = QAction(self.tr("Save Pivot"), self)
        self.act_save_pivot.setShortcut("Ctrl+Return")
        self.act_save_pivot.triggered.connect(self.session.commit)

        self.act_discard = QAction(self.tr("Discard Changes"), self)
        self.act_discard.triggered.connect(self.session.discard)

        self.act_add = QAction(self.tr("Add Pivot"), self)
        self.act_add.setShortcut("Ctrl+N")
        self.act_add.triggered.connect(self.list_panel.on_add_clicked)

        self.act_delete = QAction(self.tr("Delete Pivot"), self)
        self.act_delete.triggered.connect(self.list_panel.on_delete_clicked)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu(self.tr("&File"))
        file_menu.addAction(self.act_open)
        file_menu.addAction(self.act_import)
        file_menu.addSeparator()
        file_menu.addAction(self.act_export)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

        pivot_menu = menu_bar.addMenu(self.tr("&Pivot"))
        pivot_menu.addAction(self.act_save_pivot)
        pivot_menu.addAction(self.act_discard)
        pivot_menu.addSeparator()
        pivot_menu.addAction(self.act_add)
        pivot_menu.addAction(self.act_delete)

    # --- HELPER METHODS ---

    def update_window_title(self) -> None:
        """Updates the window title based on filename and dirty state."""
        filename = os.path.basename(self.filepath) if self.filepath else "Untitled"
        title = f"{VISIBLE_APP_NAME} - [{filename}"
        if self.session.is_dirty:
            title += "*"
        title += "]"
        self.setWindowTitle(title)

    def _on_dirty_changed(self, dirty: bool) -> None:
        self.act_save_pivot.setEnabled(dirty)
        self.act_discard.setEnabled(dirty)
        self.update_window_title()

    def _update_actions(self) -> None:
        has_selection = self.session.selected_id is not None
        self.act_delete.setEnabled(has_selection)
        self.act_export.setEnabled(self.filepath is not None or len(self.session.document) > 0)

    def on_rejected(self, message: str) -> None:
        self.statusBar().showMessage(message, 5000)
        QMessageBox.warning(self, self.tr("Pivot Editor"), message)

    def ask_unsaved_switch(self, current_id: Optional[str], target_id: Optional[str]) -> SwitchDecision:
        """Prompt used by the session when leaving a pivot with unsaved changes."""
        reply = QMessageBox.question(
            self,
            self.tr("Unsaved changes"),
            self.tr("Pivot '{0}' has unsaved changes. Save them first?").format(current_id),
            QMessageBox.StandardButton.Save | QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
        )
        if reply == QMessageBox.StandardButton.Save:
            return SwitchDecision.SAVE
        if reply == QMessageBox.StandardButton.Discard:
            return SwitchDecision.DISCARD
        return SwitchDecision.CANCEL

    def _resolve_pending_edit(self) -> bool:
        """
        Before replacing or exporting the document, let the user save or drop
        the buffer. Returns False if the action should be cancelled.
        """
        if not self.session.is_dirty:
            return True
        decision = self.ask_unsaved_switch(self.session.selected_id, None)
        if decision == SwitchDecision.SAVE:
            return self.session.commit()
        if decision == SwitchDecision.DISCARD:
            self.session.discard()
            return True
        return False

    # --- FILE SLOTS ---

    def _start_dir(self) -> str:
        return os.path.dirname(self.filepath) if self.filepath else ""

    def _load_file(self, fname: str) -> Optional[Document]:
        """Read and parse `fname`; errors are shown and None is returned."""
        try:
            return IOManager.load_document(fname)
        except ParseError:
            QMessageBox.warning(self, self.tr("Error"), self.tr("Invalid JSON file"))
        except OSError as e:
            QMessageBox.critical(self, self.tr("Error"), self.tr("Could not open file:\n{0}").format(e))
        return None

    def open_path(self, fname: str) -> bool:
        """Load `fname` into the session. Used by the command line and File -> Open."""
        document = self._load_file(fname)
        if document is None:
            return False

        try:
            self.session.load_document(document)
        except ValidationFailure as e:
            QMessageBox.warning(self, self.tr("Invalid pivot"), str(e))
            return False

        self.filepath = fname
        self.has_unexported_changes = False
        self.update_window_title()
        self._update_actions()
        self.statusBar().showMessage(self.tr("Loaded {0} pivots.").format(len(document)), 5000)
        return True

    def on_file_open(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(
            self, self.tr("Open Pivot Document"), self._start_dir(), JSON_FILTER
        )
        # Only ask about the pending edit once there is something to replace it with
        if fname and self._resolve_pending_edit():
            self.open_path(fname)

    def on_file_import(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, self.tr("Import Pivots"), self._start_dir(), JSON_FILTER)
        if not fname:
            return
        incoming = self._load_file(fname)
        if incoming is None:
            return

        result = self.session.import_document(incoming)
        QMessageBox.information(self, self.tr("Import"), result.message)
        self.statusBar().showMessage(result.message, 5000)

    def on_file_export(self) -> bool:
        """Export the committed document. Returns True if a file was written."""
        if not self._resolve_pending_edit():
            return False

        try:
            document = self.session.export_document()
        except ValidationFailure as e:
            QMessageBox.warning(self, self.tr("Invalid pivot"), str(e))
            return False

        default_path = derive_export_filename(self.filepath)
        fname, _ = QFileDialog.getSaveFileName(self, self.tr("Export Pivot Document"), default_path, JSON_FILTER)
        if not fname:
            # Cancelled: nothing written, nothing to report
            return False

        try:
            IOManager.save_document(document, fname)
        except OSError as e:
            QMessageBox.critical(self, self.tr("Error"), self.tr("Could not save file:\n{0}").format(e))
            return False

        self.has_unexported_changes = False
        self.statusBar().showMessage(self.tr("Exported to {0}").format(fname), 5000)
        return True

    def _on_document_changed(self, _document: Document) -> None:
        self.has_unexported_changes = True
        self._update_actions()

    def closeEvent(self, event: QCloseEvent, /) -> None:
        """Handle window close event to prompt for saving if modified."""
        # 1. Unsaved pivot in the editor
        if not self._resolve_pending_edit():
            event.ignore()  # Don't close window
            return

        # 2. Committed changes that were never exported
        if self.has_unexported_changes:
            reply = QMessageBox.question(
                self,
                self.tr("Export changes?"),
                self.tr("The document was changed. Do you want to export it before exiting?"),
                QMessageBox.StandardButton.Save | QMessageBox.StandardButton.Discard | QMessageBox.StandardButton.Cancel,
            )
            if reply == QMessageBox.StandardButton.Save:
                if not self.on_file_export():
                    event.ignore()
                    return
            elif reply == QMessageBox.StandardButton.Cancel:
                event.ignore()
                return

        event.accept()
