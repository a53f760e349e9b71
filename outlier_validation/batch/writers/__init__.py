"""
Batch output writers.
"""

from .text_writer import TextOutputWriter

__all__ = [
    "TextOutputWriter",
]
