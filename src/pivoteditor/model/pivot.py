"""
Pivot Definitions
=================
A pivot definition is a declarative report configuration: the target model,
a filter domain, row grouping fields, measures and the active sort.

Pivots are kept as plain JSON objects so that keys this editor does not know
about survive a load/save cycle untouched. This module holds the field names,
the default skeleton used by "Add pivot" and the structural validator.

Exports:
    PivotField: Known keys of a pivot object.
    ValidationFailure: Raised by validate() for a structurally invalid pivot.
    is_valid, validation_errors, validate: Structural checks.
    normalize_id: Integer ids to strings.
    new_pivot: Factory for the default skeleton.
"""
from __future__ import annotations

import re
from enum import StrEnum
from typing import Any, Dict, List, Optional

PivotDefinition = Dict[str, Any]

UNNAMED_LABEL = "unnamed"

_NUMERIC_ID = re.compile(r"[0-9]+")


class PivotField(StrEnum):
    ID = "id"
    NAME = "name"
    MODEL = "model"
    MODEL_NAME = "modelName"  # legacy, read for display only
    DOMAIN = "domain"
    ROW_GROUP_BYS = "rowGroupBys"
    MEASURES = "measures"
    SORTED_COLUMN = "sortedColumn"


REQUIRED_FIELDS = (PivotField.ID, PivotField.NAME, PivotField.MODEL)
LIST_FIELDS = (PivotField.MEASURES, PivotField.ROW_GROUP_BYS, PivotField.DOMAIN)


class ValidationFailure(ValueError):
    """A pivot definition is not structurally well-formed."""

    def __init__(self, pivot_id: Optional[str], errors: List[str]) -> None:
        self.pivot_id = pivot_id
        self.errors = list(errors)
        label = pivot_id if pivot_id else "<no id>"
        super().__init__(f"Pivot '{label}' is invalid: {'; '.join(self.errors)}")


def normalize_id(value: Any) -> Any:
    """Integer ids, as some exporters write them, become their decimal string."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def is_numeric_id(value: Any) -> bool:
    """True for ids that take part in auto-numbering (non-negative decimals)."""
    return isinstance(value, str) and _NUMERIC_ID.fullmatch(value) is not None


def validation_errors(pivot: Any) -> List[str]:
    """Return the reasons why `pivot` is invalid (empty list when it is valid)."""
    if not isinstance(pivot, dict):
        return ["pivot is not an object"]

    errors = []
    for key in REQUIRED_FIELDS:
        if not pivot.get(key):
            errors.append(f"'{key}' is missing or empty")
    for key in LIST_FIELDS:
        if not isinstance(pivot.get(key), list):
            errors.append(f"'{key}' must be a list")
    return errors


def is_valid(pivot: Any) -> bool:
    return not validation_errors(pivot)


def validate(pivot: Any) -> None:
    """Raise ValidationFailure if `pivot` is not structurally valid."""
    errors = validation_errors(pivot)
    if errors:
        pivot_id = pivot.get(PivotField.ID) if isinstance(pivot, dict) else None
        raise ValidationFailure(pivot_id if isinstance(pivot_id, str) else None, errors)


def new_pivot(pivot_id: str, name: str = "new pivot", model: str = "crm.lead") -> PivotDefinition:
    """Default skeleton for a freshly added pivot."""
    return {
        PivotField.ID.value: pivot_id,
        PivotField.NAME.value: name,
        PivotField.MODEL.value: model,
        PivotField.DOMAIN.value: [],
        PivotField.ROW_GROUP_BYS.value: [],
        PivotField.MEASURES.value: [],
        PivotField.SORTED_COLUMN.value: None,
    }


def display_name(pivot: PivotDefinition) -> str:
    return pivot.get(PivotField.NAME) or UNNAMED_LABEL


def display_model(pivot: PivotDefinition) -> str:
    """The model name, falling back to the legacy 'modelName' key."""
    return pivot.get(PivotField.MODEL) or pivot.get(PivotField.MODEL_NAME) or ""
