"""
Edit Session (Application State)
================================
Holds the committed Document, the id of the checked-out pivot and its edit
buffer, and is the only place where any of them change.

States:
    EMPTY - nothing selected (no pivots, or explicit deselect)
    CLEAN - a pivot is checked out and the buffer equals its committed value
    DIRTY - the buffer differs from the committed value

Every transition is announced through Qt signals so the widgets never poll.
"""
from __future__ import annotations

import copy
import logging
from enum import IntEnum, StrEnum
from typing import Any, Callable, Dict, Mapping, Optional

from PySide6.QtCore import QObject, Signal

from pivoteditor.config import EditorConfig, UnsavedSwitchPolicy
from pivoteditor.model.document import Document, IdentifierConflict
from pivoteditor.model.merge import ImportResult, merge_documents
from pivoteditor.model.pivot import (
    PivotDefinition, PivotField, ValidationFailure, new_pivot, normalize_id, validate
)

logger = logging.getLogger(__name__)


class SessionState(IntEnum):
    EMPTY = 0
    CLEAN = 1
    DIRTY = 2


class SwitchDecision(StrEnum):
    """Answer of the host when asked about unsaved changes."""
    SAVE = "save"
    DISCARD = "discard"
    CANCEL = "cancel"


# (current_id, target_id) -> decision
PromptHandler = Callable[[Optional[str], Optional[str]], SwitchDecision]


class EditSession(QObject):
    """Checkout / edit / commit-or-discard around one Document."""
    state_changed = Signal(object)
    dirty_changed = Signal(bool)
    document_changed = Signal(object)
    selection_changed = Signal(object)
    buffer_changed = Signal(object)
    rejected = Signal(str)

    def __init__(
        self,
        document: Optional[Document] = None,
        pivot_id: Optional[str] = None,
        config: Optional[EditorConfig] = None,
        prompt_handler: Optional[PromptHandler] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self.config = config or EditorConfig()
        self.prompt_handler = prompt_handler

        self._document = document if document is not None else Document()
        self._selected_id: Optional[str] = None
        self._buffer: Optional[PivotDefinition] = None
        self._state = SessionState.EMPTY

        start_id = pivot_id if pivot_id in self._document else self._document.first_id()
        self._checkout(start_id)

    # --- Read access ---

    @property
    def document(self) -> Document:
        return self._document

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def buffer(self) -> Optional[PivotDefinition]:
        """A copy of the edit buffer (None when EMPTY)."""
        return copy.deepcopy(self._buffer)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_dirty(self) -> bool:
        return self._state == SessionState.DIRTY

    # --- Transitions ---

    def select(self, pivot_id: Optional[str]) -> bool:
        """
        Check out `pivot_id`. Returns False if the unsaved-switch policy refused
        the switch; an unknown or None id deselects.
        """
        if self.is_dirty and pivot_id != self._selected_id:
            if not self._resolve_unsaved_switch(pivot_id):
                return False
        self._checkout(pivot_id)
        return True

    def edit(self, changes: Optional[Mapping[str, Any]] = None, **fields: Any) -> bool:
        """
        Shallow-merge `changes` into the buffer. A new 'id' must be non-empty and
        not used by another committed pivot, otherwise nothing changes.
        """
        if self._buffer is None:
            logger.debug("Edit ignored: no pivot selected.")
            return False

        updates: Dict[str, Any] = {str(key): value for key, value in dict(changes or {}, **fields).items()}
        if PivotField.ID.value in updates:
            try:
                self._document.check_id_available(updates[PivotField.ID.value], owner_id=self._selected_id)
            except IdentifierConflict as e:
                self._reject(str(e))
                return False

        buffer = dict(self._buffer)
        buffer.update(copy.deepcopy(updates))
        self._buffer = buffer
        self.buffer_changed.emit(self.buffer)

        committed = self._document.get(self._selected_id)
        self._set_state(SessionState.CLEAN if buffer == committed else SessionState.DIRTY)
        return True

    def commit(self) -> bool:
        """
        Write the buffer back under its (possibly new) id. Returns False, with
        no state change, when the id is empty or taken, or when validation is
        enforced and the buffer is not structurally valid.
        """
        if self._state == SessionState.EMPTY:
            return False
        if self._state == SessionState.CLEAN:
            return True

        buffer = self._buffer
        target_id = normalize_id(buffer.get(PivotField.ID))
        if target_id != buffer.get(PivotField.ID):
            buffer = dict(buffer, **{PivotField.ID.value: target_id})

        if self.config.enforce_validation:
            try:
                validate(buffer)
            except ValidationFailure as e:
                self._reject(str(e))
                return False

        try:
            # Remove + insert as one new Document: all or nothing.
            document = self._document.rename(self._selected_id, target_id, buffer)
        except IdentifierConflict as e:
            self._reject(str(e))
            return False

        previous_id = self._selected_id
        if target_id != previous_id:
            logger.info(f"Pivot '{previous_id}' renamed to '{target_id}'.")
        self._buffer = buffer
        # Observers of document_changed must already see the new selection
        self._selected_id = target_id
        self._set_document(document)
        self.selection_changed.emit(target_id)
        self.buffer_changed.emit(self.buffer)
        self._set_state(SessionState.CLEAN)
        logger.debug(f"Committed pivot '{target_id}'.")
        return True

    def discard(self) -> None:
        """Reload the buffer from the committed document."""
        if self._selected_id in self._document:
            target_id = self._selected_id
        else:
            target_id = self._document.first_id()
        self._checkout(target_id)

    # --- Document level operations ---

    def add_pivot(self) -> Optional[str]:
        """Insert a default pivot under the next free id and select it."""
        if self.is_dirty and not self._resolve_unsaved_switch(self._document.next_id()):
            return None

        # Computed after the switch: saving may have renamed the buffer.
        new_id = self._document.next_id()
        pivot = new_pivot(new_id, name=self.config.default_pivot_name, model=self.config.default_model)
        self._set_document(self._document.insert(new_id, pivot))
        logger.info(f"Added pivot '{new_id}'.")
        self._checkout(new_id)
        return new_id

    def delete_pivot(self, pivot_id: Optional[str] = None) -> bool:
        """
        Remove a pivot (default: the selected one). Deleting the selected pivot
        moves the selection to the first remaining one, or to EMPTY.
        """
        target_id = self._selected_id if pivot_id is None else pivot_id
        if target_id is None or target_id not in self._document:
            return False

        self._set_document(self._document.remove(target_id))
        logger.info(f"Deleted pivot '{target_id}'.")
        if target_id == self._selected_id:
            self._checkout(self._document.first_id())
        return True

    def load_document(self, document: Document, pivot_id: Optional[str] = None) -> None:
        """
        Replace the document wholesale (a new file was opened). Unsaved buffer
        changes are dropped. With validation enforced an invalid document raises
        ValidationFailure and the session is left as it was.
        """
        if self.config.enforce_validation:
            document.validate()

        self._set_document(document)
        self._checkout(pivot_id if pivot_id in document else document.first_id())

    def import_document(self, incoming: Document) -> ImportResult:
        """Merge the pivots of `incoming`; the selection and buffer are kept."""
        result = merge_documents(self._document, incoming, imported_name=self.config.imported_name)
        if result.count:
            self._set_document(result.document)
        return result

    def export_document(self) -> Document:
        """The committed document, validated first when enforcement is on."""
        if self.config.enforce_validation:
            self._document.validate()
        return self._document

    # --- Internals ---

    def _checkout(self, pivot_id: Optional[str]) -> None:
        pivot = self._document.get(pivot_id)
        if pivot is None:
            self._selected_id = None
            self._buffer = None
            state = SessionState.EMPTY
        else:
            self._selected_id = pivot_id
            self._buffer = copy.deepcopy(pivot)
            state = SessionState.CLEAN

        self.selection_changed.emit(self._selected_id)
        self.buffer_changed.emit(self.buffer)
        self._set_state(state)

    def _resolve_unsaved_switch(self, target_id: Optional[str]) -> bool:
        """Apply the unsaved-switch policy. True means the switch may proceed."""
        policy = self.config.on_unsaved_switch
        current_id = self._selected_id

        if policy == UnsavedSwitchPolicy.DISCARD:
            logger.info(f"Abandoning unsaved changes to pivot '{current_id}'.")
            return True

        if policy == UnsavedSwitchPolicy.PROMPT and self.prompt_handler is not None:
            decision = SwitchDecision(self.prompt_handler(current_id, target_id))
            if decision == SwitchDecision.SAVE:
                return self.commit()
            if decision == SwitchDecision.DISCARD:
                logger.info(f"Unsaved changes to pivot '{current_id}' discarded on request.")
                return True
            return False

        self._reject(f"Pivot '{current_id}' has unsaved changes. Save or discard them first.")
        return False

    def _set_document(self, document: Document) -> None:
        self._document = document
        self.document_changed.emit(document)

    def _set_state(self, state: SessionState) -> None:
        was_dirty = self.is_dirty
        self._state = state
        self.state_changed.emit(state)
        if was_dirty != self.is_dirty:
            self.dirty_changed.emit(self.is_dirty)

    def _reject(self, message: str) -> None:
        logger.warning(message)
        self.rejected.emit(message)
