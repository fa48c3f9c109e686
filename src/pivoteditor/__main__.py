"""
Run with: python -m pivoteditor [FILE]
"""
import sys

from pivoteditor.main import main

if __name__ == "__main__":
    sys.exit(main())
