"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and editor settings.

Why is this file needed?
------------------------
1. Abstraction: It prevents hardcoded paths scattered throughout the code.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find assets (icons) when the app is frozen into an .exe.
3. Policies: Behaviour that is a judgement call (what happens to unsaved
   edits when another pivot is selected, whether structural validation is
   enforced) is set here instead of being buried in the session code.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    APP_ICON_PATH (str): Absolute path to the window icon.
    UnsavedSwitchPolicy: What to do with a dirty buffer on selection switch.
    EditorConfig: Editor settings, optionally read from the environment.
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Mapping, Optional

from pivoteditor.model.io import DEFAULT_EXPORT_STEM, OSHEET_SUFFIX
from pivoteditor.model.merge import IMPORTED_NAME

logger = logging.getLogger(__name__)

ENV_PREFIX = "PIVOTEDITOR_"


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller temp folder
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # Development mode: resolve relative to this file
    # config.py is in src/pivoteditor/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


# Global Constants
ASSETS_PATH: str = get_resource_path("assets")
APP_ICON_PATH: str = os.path.join(ASSETS_PATH, "table.svg")


class UnsavedSwitchPolicy(StrEnum):
    DISCARD = "discard"  # abandon the buffer silently
    BLOCK = "block"      # refuse to switch while dirty
    PROMPT = "prompt"    # ask the host (save / discard / cancel)


def _parse_bool(raw: str) -> Optional[bool]:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    return None


@dataclass(frozen=True)
class EditorConfig:
    on_unsaved_switch: UnsavedSwitchPolicy = UnsavedSwitchPolicy.DISCARD
    enforce_validation: bool = False

    default_pivot_name: str = "new pivot"
    default_model: str = "crm.lead"
    imported_name: str = IMPORTED_NAME

    export_suffix: str = OSHEET_SUFFIX
    default_export_stem: str = DEFAULT_EXPORT_STEM

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> EditorConfig:
        """
        Read overrides from PIVOTEDITOR_* variables. Unknown values are logged
        and the default is kept.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        policy = defaults.on_unsaved_switch
        raw_policy = env.get(f"{ENV_PREFIX}UNSAVED_SWITCH")
        if raw_policy is not None:
            try:
                policy = UnsavedSwitchPolicy(raw_policy.strip().lower())
            except ValueError:
                logger.warning(f"Unknown {ENV_PREFIX}UNSAVED_SWITCH value '{raw_policy}', using '{policy}'.")

        enforce = defaults.enforce_validation
        raw_enforce = env.get(f"{ENV_PREFIX}ENFORCE_VALIDATION")
        if raw_enforce is not None:
            parsed = _parse_bool(raw_enforce)
            if parsed is None:
                logger.warning(f"Unknown {ENV_PREFIX}ENFORCE_VALIDATION value '{raw_enforce}', using {enforce}.")
            else:
                enforce = parsed

        default_model = env.get(f"{ENV_PREFIX}DEFAULT_MODEL") or defaults.default_model

        return cls(
            on_unsaved_switch=policy,
            enforce_validation=enforce,
            default_model=default_model,
        )
