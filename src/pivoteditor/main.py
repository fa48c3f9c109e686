"""
Application Initialization
==========================
This module wires the configuration, the logging and the main window
together and starts the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Parses the command line (optional file to open, log settings).
2. Reads the editor configuration from the environment.
3. Instantiates the Main Window, which owns the edit session.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from pivoteditor import __version__
from pivoteditor.config import EditorConfig
from pivoteditor.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pivoteditor",
        description="Edit the pivot definitions of an .osheet.json document.",
    )
    parser.add_argument("file", nargs="?", help="document to open on start")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    parser.add_argument("--log-file", help="also write the log to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)

    # Qt is imported lazily so `--help` works without a display
    from pivoteditor.app.application import create_app
    from pivoteditor.app.ui.main_window import MainWindow

    # 2. Create the Qt Application
    app = create_app([sys.argv[0]])

    # 3. Initialize the Main Window with the configuration
    config = EditorConfig.from_env()
    logger.debug(f"Editor configuration: {config}")
    window = MainWindow(config)
    if args.file:
        window.open_path(args.file)
    window.show()

    # 4. Start Event Loop
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
