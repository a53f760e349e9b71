"""
Job configuration management.

Loads the validation job configuration from YAML files (or plain mappings)
into a typed JobConfig. Every failure is reported as ConfigurationError so
the run aborts before any group is processed.
"""

import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from outlier_validation.core.errors import ConfigurationError

OUTPUT_TYPES = ("valid", "invalid", "all")


def _parse_ordinals(value: Any) -> Any:
    """Accept "2,3,4" as well as [2, 3, 4]."""
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",") if item.strip()]
        try:
            return [int(item) for item in items]
        except ValueError:
            raise ValueError(f"ordinal list must contain integers, got '{value}'")
    if isinstance(value, int):
        return [value]
    return value


class JobConfig(BaseModel):
    """
    Typed configuration of an outlier validation job.

    Field aliases are the dotted option names used in configuration files
    and in -D overrides on the command line.

    Attributes:
        field_delim_regex: Input field separator (regex)
        field_delim_out: Output field separator
        quantity_attr_ordinals: Quantitative field ordinals (ascending)
        id_field_ordinals: Identifying field ordinals (default: fields before the first quant ordinal)
        std_dev_mult: Multiplier applied to the running standard deviation
        output_type: Output policy: valid, invalid or all
        incremental_file_prefix: File name prefix marking incremental (raw) input files
        num_partitions: Number of partitions used for grouping
        hist_bin_width: Bin width for histogram runs
        hist_confidence_percent: Confidence percentage for histogram runs
    """

    field_delim_regex: str = Field(",", alias="field.delim.regex", min_length=1)
    field_delim_out: str = Field(",", alias="field.delim.out")
    quantity_attr_ordinals: list[int] = Field(..., alias="quantity.attr.ordinals", min_length=1)
    id_field_ordinals: list[int] | None = Field(None, alias="id.field.ordinals")
    std_dev_mult: float = Field(3.0, alias="std.dev.mult", gt=0.0, allow_inf_nan=False)
    output_type: Literal["valid", "invalid", "all"] = Field("invalid", alias="output.type")
    incremental_file_prefix: str | None = Field(None, alias="incremental.file.prefix")
    num_partitions: int = Field(1, alias="num.partitions", ge=1)
    hist_bin_width: int = Field(10, alias="hist.bin.width", gt=0)
    hist_confidence_percent: int = Field(95, alias="hist.confidence.percent", ge=0)

    class Config:
        frozen = True
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "field.delim.regex": ",",
                "quantity.attr.ordinals": [2],
                "id.field.ordinals": [0, 1],
                "std.dev.mult": 2.0,
                "output.type": "invalid",
                "incremental.file.prefix": "incr"
            }
        }

    @field_validator("quantity_attr_ordinals", "id_field_ordinals", mode="before")
    @classmethod
    def parse_ordinal_list(cls, v):
        return _parse_ordinals(v)

    @field_validator("quantity_attr_ordinals")
    @classmethod
    def check_quantity_ordinals(cls, v):
        """Quantitative ordinals must be non-negative, unique and ascending."""
        if any(ordinal < 0 for ordinal in v):
            raise ValueError("ordinals must be non-negative")
        if v != sorted(set(v)):
            raise ValueError("quantity.attr.ordinals must be unique and in ascending order")
        return v

    @field_validator("id_field_ordinals")
    @classmethod
    def check_id_ordinals(cls, v):
        if v is not None:
            if not v:
                raise ValueError("id.field.ordinals must not be empty when given")
            if any(ordinal < 0 for ordinal in v):
                raise ValueError("ordinals must be non-negative")
        return v

    @field_validator("field_delim_regex")
    @classmethod
    def check_regex(cls, v):
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"invalid field delimiter regex '{v}': {e}")
        return v

    @model_validator(mode="after")
    def check_identifying_fields(self):
        """Without explicit id ordinals there must be fields before the first quant ordinal."""
        if self.id_field_ordinals is None and self.quantity_attr_ordinals[0] == 0:
            raise ValueError(
                "no identifying fields: set id.field.ordinals or place quantitative fields after the key"
            )
        return self

    @classmethod
    def from_mapping(cls, mapping: dict[str, Any]) -> "JobConfig":
        """
        Build a JobConfig from a mapping of option names to values.

        Raises:
            ConfigurationError: If any option is missing or malformed
        """
        try:
            return cls.model_validate(mapping)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid job configuration: {e}") from e

    @property
    def identifying_ordinals(self) -> list[int]:
        """Ordinals of the identifying fields forming the grouping key."""
        if self.id_field_ordinals is not None:
            return list(self.id_field_ordinals)
        return list(range(self.quantity_attr_ordinals[0]))

    def require_incremental_prefix(self) -> str:
        """
        Return the incremental file prefix needed by file ingestion.

        Raises:
            ConfigurationError: If the prefix was not configured
        """
        if not self.incremental_file_prefix:
            raise ConfigurationError("incremental file prefix needs to be specified (incremental.file.prefix)")
        return self.incremental_file_prefix

    def to_properties(self) -> dict[str, Any]:
        """Dump using the dotted option names."""
        return self.model_dump(by_alias=True)


class JobConfigLoader:
    """
    Loads a job configuration from a YAML file.

    Expected YAML format:
    ```yaml
    job:
      field.delim.regex: ","
      quantity.attr.ordinals: [2, 3]
      id.field.ordinals: [0, 1]
      std.dev.mult: 3.0
      output.type: invalid
      incremental.file.prefix: incr
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the job config loader.

        Args:
            config_path: Path to the YAML configuration file

        Raises:
            ConfigurationError: If the file does not exist
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigurationError(f"Job configuration file not found: {config_path}")

    def load(self, overrides: dict[str, Any] | None = None) -> JobConfig:
        """
        Load and validate the job configuration.

        Args:
            overrides: Option values taking precedence over the file

        Returns:
            Validated JobConfig

        Raises:
            ConfigurationError: If YAML is invalid or options are missing/malformed
        """
        try:
            with open(self.config_path) as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e

        if not config or "job" not in config:
            raise ConfigurationError("Configuration file must contain 'job' section")

        options = config["job"]
        if not isinstance(options, dict):
            raise ConfigurationError("'job' section must be a mapping of option names to values")

        merged = {**options, **(overrides or {})}
        return JobConfig.from_mapping(merged)


def parse_overrides(pairs: list[str] | None) -> dict[str, str]:
    """
    Parse "key=value" override strings.

    Raises:
        ConfigurationError: If an entry has no '='
    """
    overrides: dict[str, str] = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ConfigurationError(f"Override must be key=value, got '{pair}'")
        key, value = pair.split("=", 1)
        overrides[key.strip()] = value.strip()
    return overrides
