"""
Outlier validation rule.

Provides the symmetric standard deviation bound and integer field parsing.
"""

from .bound_validator import StdDevBoundValidator, parse_quantity, round_half_away_from_zero

__all__ = [
    "StdDevBoundValidator",
    "parse_quantity",
    "round_half_away_from_zero",
]
