"""
The MODEL layer contains pure data structures and document logic.
It has NO knowledge of the GUI (Qt).
It deals with pivot documents, validation, import/merge and JSON I/O.
"""
