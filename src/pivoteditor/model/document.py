"""
Pivot Document (Data Model)
===========================
The in-memory form of a loaded `.osheet.json` file.

Why is this file needed?
------------------------
1. Value semantics: every mutator returns a NEW Document and leaves the
   receiver untouched, so the editor can keep the committed snapshot around
   while a new one is built (discard, atomic rename).
2. Passthrough: top-level keys other than 'pivots' are kept verbatim and
   written back in their original position.
3. Numbering: new pivot ids are derived from the largest numeric id.

Classes:
    Document: Immutable pivots mapping plus passthrough fields.
    IdentifierConflict: Raised when a pivot id is empty or already taken.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from pivoteditor.model.pivot import (
    PivotDefinition, PivotField, ValidationFailure, is_numeric_id, validation_errors
)

PIVOTS_KEY = "pivots"


class IdentifierConflict(ValueError):
    """A pivot id is empty or already used by another pivot."""

    def __init__(self, pivot_id: Optional[str], reason: str) -> None:
        self.pivot_id = pivot_id
        super().__init__(reason)


@dataclass(frozen=True)
class Document:
    """
    Immutable pivot document. Treat `pivots` and `extra` as read-only; use the
    mutators below, which all return a new Document.
    """
    pivots: Dict[str, PivotDefinition] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    # Original top-level key order, used only when serializing.
    key_order: Tuple[str, ...] = field(default=(), compare=False)

    # --- Construction ---

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> Document:
        raw_pivots = data.get(PIVOTS_KEY)
        if raw_pivots is None:
            raw_pivots = {}
        elif not isinstance(raw_pivots, Mapping):
            raise ValueError(f"'{PIVOTS_KEY}' must be an object, got {type(raw_pivots).__name__}.")

        pivots = {str(key): copy.deepcopy(value) for key, value in raw_pivots.items()}
        extra = {key: copy.deepcopy(value) for key, value in data.items() if key != PIVOTS_KEY}
        return Document(pivots=pivots, extra=extra, key_order=tuple(data.keys()))

    def to_dict(self) -> Dict[str, Any]:
        """Plain JSON-ready dict, keys in their original order."""
        result: Dict[str, Any] = {}
        for key in self.key_order:
            if key == PIVOTS_KEY:
                result[PIVOTS_KEY] = copy.deepcopy(self.pivots)
            elif key in self.extra:
                result[key] = copy.deepcopy(self.extra[key])

        if PIVOTS_KEY not in result:
            result[PIVOTS_KEY] = copy.deepcopy(self.pivots)
        for key, value in self.extra.items():
            if key not in result:
                result[key] = copy.deepcopy(value)
        return result

    # --- Read access ---

    def get(self, pivot_id: Optional[str]) -> Optional[PivotDefinition]:
        if pivot_id is None:
            return None
        return self.pivots.get(pivot_id)

    def list(self) -> List[Tuple[str, PivotDefinition]]:
        return list(self.pivots.items())

    def ids(self) -> List[str]:
        return list(self.pivots.keys())

    def first_id(self) -> Optional[str]:
        return next(iter(self.pivots), None)

    def __contains__(self, pivot_id: object) -> bool:
        return pivot_id in self.pivots

    def __len__(self) -> int:
        return len(self.pivots)

    def __iter__(self) -> Iterator[str]:
        return iter(self.pivots)

    # --- Numbering ---

    def max_numeric_id(self) -> int:
        """Largest id that parses as a non-negative integer, 0 when none do."""
        return max((int(key) for key in self.pivots if is_numeric_id(key)), default=0)

    def next_id(self) -> str:
        return str(self.max_numeric_id() + 1)

    def check_id_available(self, pivot_id: Any, owner_id: Optional[str] = None) -> None:
        """
        Raise IdentifierConflict unless `pivot_id` is a non-empty string that is
        either unused or used by `owner_id` itself.
        """
        if not isinstance(pivot_id, str) or not pivot_id:
            raise IdentifierConflict(None, "Pivot id must be a non-empty string.")
        if pivot_id != owner_id and pivot_id in self.pivots:
            raise IdentifierConflict(pivot_id, f"Pivot id '{pivot_id}' is already in use.")

    # --- Mutators (return new Documents) ---

    def _with_pivots(self, pivots: Dict[str, PivotDefinition]) -> Document:
        return Document(pivots=pivots, extra=self.extra, key_order=self.key_order)

    def insert(self, pivot_id: str, pivot: PivotDefinition) -> Document:
        """Add or replace a pivot."""
        pivots = dict(self.pivots)
        pivots[pivot_id] = copy.deepcopy(pivot)
        return self._with_pivots(pivots)

    def remove(self, pivot_id: str) -> Document:
        pivots = {key: value for key, value in self.pivots.items() if key != pivot_id}
        return self._with_pivots(pivots)

    def rename(self, old_id: str, new_id: str, pivot: PivotDefinition) -> Document:
        """
        Move `old_id` to `new_id` (keeping its position) and store `pivot` there.
        Raises IdentifierConflict if `new_id` belongs to a different pivot.
        """
        self.check_id_available(new_id, owner_id=old_id)
        if old_id not in self.pivots:
            return self.insert(new_id, pivot)

        pivots: Dict[str, PivotDefinition] = {}
        for key, value in self.pivots.items():
            if key == old_id:
                pivots[new_id] = copy.deepcopy(pivot)
            else:
                pivots[key] = value
        return self._with_pivots(pivots)

    def replace_all(self, new_pivots: Mapping[str, PivotDefinition]) -> Document:
        return self._with_pivots({str(key): copy.deepcopy(value) for key, value in new_pivots.items()})

    # --- Validation ---

    def validate(self) -> None:
        """
        Raise ValidationFailure for the first pivot that is structurally invalid
        or whose 'id' differs from its key.
        """
        for pivot_id, pivot in self.pivots.items():
            errors = validation_errors(pivot)
            if not errors and pivot.get(PivotField.ID) != pivot_id:
                errors = [f"'id' does not match its key '{pivot_id}'"]
            if errors:
                raise ValidationFailure(pivot_id, errors)
