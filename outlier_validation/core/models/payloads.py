"""
Payload models delivered to the group aggregator (ephemeral).

A group holds any number of StatPayloads and, when validation is to be
performed, exactly one RawRecord.
"""

from pydantic import BaseModel, Field

from .running_stats import RunningStats


class StatPayload(BaseModel):
    """
    Pre-computed statistics for one group, one entry per quantitative ordinal.

    Attributes:
        entries: Running statistics, in quantitative ordinal order
    """

    entries: tuple[RunningStats, ...] = Field(default_factory=tuple)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "entries": [
                    {"ordinal": 2, "average": 100, "std_dev": 5.0}
                ]
            }
        }


class RawRecord(BaseModel):
    """
    The incremental record being validated.

    Attributes:
        fields: Full original field sequence, as split from the input line
    """

    fields: tuple[str, ...] = Field(..., min_length=1)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "fields": ["A", "B", "109"]
            }
        }

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, ordinal: int) -> str:
        return self.fields[ordinal]
