"""
RunningStats model holding pre-computed statistics for one quantitative field.
"""

from pydantic import BaseModel, Field


class RunningStats(BaseModel):
    """
    Running average and standard deviation for one quantitative field ordinal.

    Supplied pre-computed by an earlier aggregation pass (one entry per
    quantitative ordinal, carried inside a StatPayload).

    Attributes:
        ordinal: Field ordinal the statistics belong to
        average: Running average (integer)
        std_dev: Running standard deviation
    """

    ordinal: int = Field(..., ge=0)
    average: int
    std_dev: float = Field(..., ge=0.0, allow_inf_nan=False)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "ordinal": 2,
                "average": 100,
                "std_dev": 5.0
            }
        }


# One (ordinal, average, std_dev) entry as shipped in an aggregate file
StatRecordEntry = RunningStats
