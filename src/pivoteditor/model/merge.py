"""
Pivot Import (Merge)
====================
Unions the pivots of a foreign document into the current one.

Incoming pivots are renumbered above the largest numeric id of the base
document, so keys never collide, and their names are replaced with a fixed
label that makes their provenance obvious. Other fields are copied as-is;
there is no validation gate.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pivoteditor.model.document import Document
from pivoteditor.model.pivot import PivotField

logger = logging.getLogger(__name__)

IMPORTED_NAME = "imported"


@dataclass(frozen=True)
class ImportResult:
    document: Document
    imported_ids: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.imported_ids)

    @property
    def first_id(self) -> Optional[str]:
        return self.imported_ids[0] if self.imported_ids else None

    @property
    def message(self) -> str:
        if not self.imported_ids:
            return "No pivots found in the imported file."
        noun = "pivot" if self.count == 1 else "pivots"
        return f"Imported {self.count} {noun} starting at id {self.first_id}."


def merge_documents(base: Document, incoming: Document, imported_name: str = IMPORTED_NAME) -> ImportResult:
    """
    Return `base` extended with every pivot of `incoming`.

    An incoming document without pivots leaves `base` unchanged and reports
    zero imported ids.
    """
    if not incoming.pivots:
        logger.info("Import skipped: the incoming document has no pivots.")
        return ImportResult(document=base)

    max_id = base.max_numeric_id()
    new_pivots = dict(base.pivots)
    imported_ids = []

    for pivot in incoming.pivots.values():
        max_id += 1
        new_id = str(max_id)

        if isinstance(pivot, dict):
            renamed = copy.deepcopy(pivot)
            renamed[PivotField.ID.value] = new_id
            renamed[PivotField.NAME.value] = imported_name
        else:
            # Garbage in, garbage stored.
            renamed = copy.deepcopy(pivot)

        new_pivots[new_id] = renamed
        imported_ids.append(new_id)

    logger.info(f"Imported {len(imported_ids)} pivots as ids {imported_ids[0]}..{imported_ids[-1]}.")
    return ImportResult(document=base.replace_all(new_pivots), imported_ids=imported_ids)
