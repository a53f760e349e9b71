"""
Pytest configuration and fixtures for outlier validation tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
import os
import shutil
from pathlib import Path
from typing import Generator

import pytest

from outlier_validation.core.rules import JobConfig


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that start a local Spark session"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that run the CLI"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# SPARK FIXTURES
# =======================

@pytest.fixture(scope="session")
def spark_session():
    """
    Create a Spark session for testing with local mode

    Skips when no Java runtime is available.

    Yields:
        SparkSession configured for local testing
    """
    if not (os.getenv("JAVA_HOME") or shutil.which("java")):
        pytest.skip("Spark tests need a Java runtime")

    from pyspark.sql import SparkSession

    spark = (
        SparkSession.builder
        .appName("outlier-validation-test")
        .master("local[2]")
        .config("spark.sql.shuffle.partitions", "2")
        .config("spark.driver.memory", "1g")
        .config("spark.ui.enabled", "false")  # Disable UI for tests
        .getOrCreate()
    )

    # Set log level to WARN to reduce test output noise
    spark.sparkContext.setLogLevel("WARN")

    yield spark

    spark.stop()


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture
def job_config() -> JobConfig:
    """
    Two identifying fields (0, 1), one quantitative field (2), multiplier 2.0

    Returns:
        JobConfig with output type "invalid"
    """
    return JobConfig.from_mapping({
        "quantity.attr.ordinals": [2],
        "id.field.ordinals": [0, 1],
        "std.dev.mult": 2.0,
        "incremental.file.prefix": "incr",
    })


@pytest.fixture
def make_config():
    """Factory for JobConfig variants over the two-field default layout."""

    def _make(**options) -> JobConfig:
        mapping = {
            "quantity.attr.ordinals": [2],
            "id.field.ordinals": [0, 1],
            "std.dev.mult": 2.0,
            "incremental.file.prefix": "incr",
        }
        mapping.update(options)
        return JobConfig.from_mapping(mapping)

    return _make


# =======================
# FILE FIXTURES
# =======================

# Aggregate layout: id fields, quant field, then
# ordinal, count, sum, sum_of_squares, average, std_dev
AGGREGATE_LINES = [
    "A,B,100,2,10,1000,100250,100,5.0",
    "A,C,50,2,10,500,25040,50,2.0",
    "X,Y,10,2,10,100,1000,10,0.0",
]

INCREMENTAL_LINES = [
    "A,B,109",   # within [90, 110]
    "A,C,55",    # outside [46, 54]
    "Q,R,7",     # no statistics for this key
]


@pytest.fixture
def aggregate_lines() -> list[str]:
    """Aggregate (statistics) lines for groups A,B / A,C / X,Y"""
    return list(AGGREGATE_LINES)


@pytest.fixture
def incremental_lines() -> list[str]:
    """Raw record lines: one valid, one invalid, one without statistics"""
    return list(INCREMENTAL_LINES)


@pytest.fixture
def input_dir(tmp_path) -> Path:
    """
    Input directory with one aggregate file and one incremental file

    Returns:
        Path to the directory
    """
    directory = tmp_path / "input"
    directory.mkdir()
    (directory / "aggr_0001.txt").write_text("\n".join(AGGREGATE_LINES) + "\n")
    (directory / "incr_0001.txt").write_text("\n".join(INCREMENTAL_LINES) + "\n")
    return directory


@pytest.fixture
def job_yaml(tmp_path) -> Generator[Path, None, None]:
    """Job configuration file matching the input_dir layout"""
    path = tmp_path / "job.yaml"
    path.write_text(
        "job:\n"
        "  quantity.attr.ordinals: [2]\n"
        "  id.field.ordinals: [0, 1]\n"
        "  std.dev.mult: 2.0\n"
        "  output.type: invalid\n"
        "  incremental.file.prefix: incr\n"
    )
    yield path
