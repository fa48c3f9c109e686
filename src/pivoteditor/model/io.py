"""
Input/Output Manager (JSON)
Handles parsing, serializing and saving pivot documents (.osheet.json files).
"""
from __future__ import annotations

import json
import logging
import os
import time
from typing import Optional, Union

from pivoteditor.model.document import Document

# Get module logger
logger = logging.getLogger(__name__)

OSHEET_SUFFIX = ".osheet.json"
DEFAULT_EXPORT_STEM = "File"


class ParseError(ValueError):
    """The file is not well-formed JSON or its top level is not an object."""


def parse(text: Union[str, bytes]) -> Document:
    """Build a Document from JSON text. Raises ParseError on malformed input."""
    if isinstance(text, (bytes, bytearray)):
        try:
            # utf-8-sig tolerates a leading BOM
            text = bytes(text).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(f"File is not valid UTF-8: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object at the top level, got {type(data).__name__}.")

    try:
        return Document.from_dict(data)
    except ValueError as e:
        raise ParseError(str(e)) from e


def serialize(document: Document) -> str:
    """Stable, 2-space indented JSON text for `document`."""
    return json.dumps(document.to_dict(), indent=2, ensure_ascii=False)


def derive_export_filename(source_name: Optional[str], timestamp: Optional[int] = None) -> str:
    """
    Name for an exported copy: 'Report.osheet.json' -> 'Report.<ts>.osheet.json'.
    Names without the '.osheet.json' suffix fall back to 'File.<ts>.osheet.json'.
    A directory prefix, if any, is kept.
    """
    if timestamp is None:
        timestamp = int(time.time() * 1000)

    directory, basename = os.path.split(source_name or "")
    if basename.endswith(OSHEET_SUFFIX):
        stem = basename[:-len(OSHEET_SUFFIX)]
        new_name = f"{stem}.{timestamp}{OSHEET_SUFFIX}"
    else:
        new_name = f"{DEFAULT_EXPORT_STEM}.{timestamp}{OSHEET_SUFFIX}"

    return os.path.join(directory, new_name) if directory else new_name


class IOManager:

    @staticmethod
    def load_document(filepath: str) -> Document:
        logger.info(f"Loading document from: {filepath}")
        try:
            with open(filepath, "rb") as f:
                raw = f.read()
        except OSError as e:
            logger.exception(f"Failed to read document: {e}")
            raise

        try:
            document = parse(raw)
        except ParseError as e:
            logger.error(f"Failed to parse '{filepath}': {e}")
            raise

        logger.info(f"Loaded {len(document)} pivots from: {filepath}")
        return document

    @staticmethod
    def save_document(document: Document, filepath: str) -> None:
        logger.info(f"Saving document to: {filepath}")
        data = serialize(document)
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                f.write(data)
        except OSError as e:
            logger.exception(f"Failed to save document: {e}")
            raise

        logger.info(f"Document saved to: {filepath} ({len(document)} pivots)")
