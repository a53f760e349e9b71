"""
Job configuration management.
"""

from .job_config import OUTPUT_TYPES, JobConfig, JobConfigLoader, parse_overrides

__all__ = [
    "JobConfig",
    "JobConfigLoader",
    "OUTPUT_TYPES",
    "parse_overrides",
]
