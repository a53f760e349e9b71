"""
Local file reader splitting input into aggregate and incremental lines.
"""

from pathlib import Path
from typing import Callable

from .text_reader import iter_input_files, iter_lines


class FileReader:
    """
    Reads an input path without Spark.

    Files are classified by a predicate on their path (the grouping
    scheme's incremental file prefix check).
    """

    def __init__(self, is_aggregate_file: Callable[[str], bool]):
        """
        Initialize file reader.

        Args:
            is_aggregate_file: Returns True for statistics files
        """
        self.is_aggregate_file = is_aggregate_file

    def read(self, input_path: str | Path) -> tuple[list[str], list[str]]:
        """
        Read all files under the input path.

        Args:
            input_path: File or directory

        Returns:
            Tuple of (aggregate_lines, incremental_lines)

        Raises:
            FileNotFoundError: If the path does not exist
        """
        aggregate_lines: list[str] = []
        incremental_lines: list[str] = []

        for file_path in iter_input_files(input_path):
            target = aggregate_lines if self.is_aggregate_file(str(file_path)) else incremental_lines
            target.extend(iter_lines(file_path))

        return aggregate_lines, incremental_lines
