"""
Input parsing utilities for the outlier validation pipeline.

Provides reusable helpers to split delimited lines and parse numeric
fields, raising MalformedRecordError with enough context to locate the
offending input.
"""

import re
from functools import lru_cache

from outlier_validation.core.errors import ConfigurationError, MalformedRecordError

# Optionally signed ASCII decimal digits, nothing else
_INTEGER = re.compile(r"[+-]?[0-9]+", re.ASCII)


@lru_cache(maxsize=32)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def split_fields(line: str, delim_regex: str) -> list[str]:
    """
    Split a delimited line into fields.

    The line terminator is removed and trailing empty fields are dropped,
    so "a,b,," yields two fields.

    Args:
        line: Raw input line
        delim_regex: Field separator regex

    Returns:
        List of field values

    Examples:
        >>> split_fields("A,B,109\\n", ",")
        ['A', 'B', '109']
        >>> split_fields("A;B, 7", "[;,]\\\\s*")
        ['A', 'B', '7']
        >>> split_fields("a,b,,", ",")
        ['a', 'b']
    """
    fields = _compile(delim_regex).split(line.rstrip("\r\n"))
    while fields and fields[-1] == "":
        fields.pop()
    return fields


def parse_int_field(
    fields: list[str],
    index: int,
    group_key: tuple[str, ...] | None = None,
    ordinal: int | None = None
) -> int:
    """
    Parse fields[index] as an integer.

    Args:
        fields: Split line
        index: Position of the field to parse
        group_key: Key of the record (for error messages)
        ordinal: Quantitative ordinal the field belongs to (for error messages)

    Raises:
        MalformedRecordError: If the field is missing or not an integer

    Examples:
        >>> parse_int_field(["A", "12"], 1)
        12
    """
    if index >= len(fields):
        raise MalformedRecordError(
            f"line has {len(fields)} fields, expected an integer at position {index}",
            group_key=group_key,
            ordinal=ordinal,
        )
    value = fields[index].strip()
    if not _INTEGER.fullmatch(value):
        raise MalformedRecordError(
            f"expected an integer at position {index}, got '{fields[index]}'",
            group_key=group_key,
            ordinal=ordinal,
        )
    return int(value)


def parse_float_field(
    fields: list[str],
    index: int,
    group_key: tuple[str, ...] | None = None,
    ordinal: int | None = None
) -> float:
    """
    Parse fields[index] as a float.

    Raises:
        MalformedRecordError: If the field is missing or not a number

    Examples:
        >>> parse_float_field(["A", "5.25"], 1)
        5.25
    """
    if index >= len(fields):
        raise MalformedRecordError(
            f"line has {len(fields)} fields, expected a number at position {index}",
            group_key=group_key,
            ordinal=ordinal,
        )
    try:
        return float(fields[index].strip())
    except ValueError:
        raise MalformedRecordError(
            f"expected a number at position {index}, got '{fields[index]}'",
            group_key=group_key,
            ordinal=ordinal,
        ) from None


def validate_file_path(file_path: str, field_name: str = "file_path") -> str:
    """
    Validate an input or output path given on the command line.

    Args:
        file_path: The file path to validate
        field_name: Name of the option (for error messages)

    Returns:
        The validated file path (stripped of whitespace)

    Raises:
        ConfigurationError: If validation fails

    Examples:
        >>> validate_file_path("/data/input")
        '/data/input'
    """
    if not file_path or not isinstance(file_path, str):
        raise ConfigurationError(f"{field_name} must be a non-empty string")

    file_path = file_path.strip()

    if not file_path:
        raise ConfigurationError(f"{field_name} cannot be empty or whitespace-only")

    # Check for null bytes (security)
    if "\x00" in file_path:
        raise ConfigurationError(f"{field_name} contains null bytes")

    return file_path


def extract_group_key(fields: list[str], id_ordinals: list[int]) -> tuple[str, ...]:
    """
    Pick the identifying fields forming the grouping key.

    Raises:
        MalformedRecordError: If the line is too short to hold every identifying field

    Examples:
        >>> extract_group_key(["A", "B", "109"], [0, 1])
        ('A', 'B')
    """
    missing = [ordinal for ordinal in id_ordinals if ordinal >= len(fields)]
    if missing:
        raise MalformedRecordError(
            f"line has {len(fields)} fields, identifying field missing",
            ordinal=missing[0],
        )
    return tuple(fields[ordinal] for ordinal in id_ordinals)
