"""
Delimited text reader for aggregate and incremental input files.
"""

from pathlib import Path
from typing import Iterator

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import col, input_file_name, length, trim


class TextLineReader:
    """
    Reads delimited text lines with Spark, keeping the originating file.

    The file name tells aggregate (statistics) files from incremental
    (raw record) files, so every line is tagged with its source path.
    """

    def __init__(self, spark: SparkSession):
        """
        Initialize text reader.

        Args:
            spark: Active Spark session
        """
        self.spark = spark

    def read(self, input_path: str | list[str]) -> DataFrame:
        """
        Read text files into a DataFrame with columns `value` and `source_file`.

        Args:
            input_path: File, directory or glob (or a list of them)

        Returns:
            Spark DataFrame without blank lines
        """
        paths = input_path if isinstance(input_path, list) else [input_path]
        df = self.spark.read.text(paths)

        return df \
            .withColumn("source_file", input_file_name()) \
            .filter(length(trim(col("value"))) > 0)


def iter_input_files(input_path: str | Path) -> list[Path]:
    """
    List the data files under a path (a single file or a directory).

    Hidden files and Spark/Hadoop markers (_SUCCESS, .crc) are skipped.
    """
    path = Path(input_path)
    if path.is_file():
        return [path]
    if not path.is_dir():
        raise FileNotFoundError(f"Input path not found: {input_path}")
    return sorted(
        p for p in path.iterdir()
        if p.is_file() and not p.name.startswith((".", "_"))
    )


def iter_lines(file_path: str | Path) -> Iterator[str]:
    """Yield the non-blank lines of a local text file."""
    with open(file_path, encoding="utf-8") as f:
        for line in f:
            line = line.rstrip("\r\n")
            if line:
                yield line
