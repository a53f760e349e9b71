"""
Text output writer for validated records.
"""

from pathlib import Path
from typing import Iterable

from pyspark import RDD


class TextOutputWriter:
    """
    Writes output lines, either from a Spark RDD or from a local iterable.
    """

    def write_rdd(self, rdd: RDD, output_path: str) -> None:
        """
        Write an RDD of lines as a Hadoop-style text output directory.

        Args:
            rdd: RDD of output lines
            output_path: Output directory (must not exist)
        """
        rdd.saveAsTextFile(output_path)

    def write_lines(self, lines: Iterable[str], output_path: str | Path) -> int:
        """
        Write lines to a local file, creating parent directories.

        Args:
            lines: Output lines
            output_path: Output file path

        Returns:
            Number of lines written
        """
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        count = 0
        with open(path, "w", encoding="utf-8") as f:
            for line in lines:
                f.write(line)
                f.write("\n")
                count += 1
        return count
