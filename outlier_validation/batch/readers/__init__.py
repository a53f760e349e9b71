"""
Batch input readers.
"""

from .file_reader import FileReader
from .text_reader import TextLineReader, iter_input_files, iter_lines

__all__ = [
    "TextLineReader",
    "FileReader",
    "iter_input_files",
    "iter_lines",
]
