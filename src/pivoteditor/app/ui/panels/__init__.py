from pivoteditor.app.ui.panels.pivot_editor import PivotEditorPanel
from pivoteditor.app.ui.panels.pivot_list import PivotListPanel

__all__ = ["PivotEditorPanel", "PivotListPanel"]
