"""
ValidationResult model representing the outcome of validating one group (ephemeral).
"""

from pydantic import BaseModel, Field, field_validator

from .payloads import RawRecord


class ValidationResult(BaseModel):
    """
    Outcome of validating the raw record of one group.

    Note: ValidationResult is ephemeral, not persisted (used in-memory
    between classification and the output policy).

    Attributes:
        group_key: Identifying prefix of the group
        record: The raw record that was validated
        invalid_field_ordinals: Quantitative ordinals outside their bounds, ascending
    """

    group_key: tuple[str, ...]
    record: RawRecord
    invalid_field_ordinals: list[int] = Field(default_factory=list)

    @field_validator('invalid_field_ordinals')
    @classmethod
    def check_sorted_unique(cls, v):
        """Invalid ordinals are reported once each, in ascending order."""
        if v != sorted(set(v)):
            raise ValueError("invalid_field_ordinals must be unique and ascending")
        return v

    @property
    def valid(self) -> bool:
        return not self.invalid_field_ordinals

    class Config:
        json_schema_extra = {
            "example": {
                "group_key": ["A", "B"],
                "record": {"fields": ["A", "B", "111"]},
                "invalid_field_ordinals": [2]
            }
        }
