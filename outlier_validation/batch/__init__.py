"""
Batch processing: grouping scheme, local runner and Spark pipeline.
"""

from .grouping import CompositeKeyGroupingScheme
from .local_runner import LocalValidationRunner, build_running_stats, field_histogram
from .pipeline import OutlierValidationPipeline
from .readers import FileReader, TextLineReader
from .writers import TextOutputWriter

__all__ = [
    "CompositeKeyGroupingScheme",
    "LocalValidationRunner",
    "OutlierValidationPipeline",
    "build_running_stats",
    "field_histogram",
    "FileReader",
    "TextLineReader",
    "TextOutputWriter",
]
