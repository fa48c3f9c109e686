"""Pivot definitions editor for .osheet.json documents."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pivoteditor")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
