"""
CompositeKey model: identifying-field prefix plus a payload discriminant.
"""

from typing import Literal

from pydantic import BaseModel

# Discriminant values
STATS_PAYLOAD = 0
RECORD_PAYLOAD = 1


class CompositeKey(BaseModel):
    """
    Grouping key emitted by the map phase (ephemeral).

    Two keys belong to the same group when their identifying-field prefix
    matches. The discriminant only labels the payload and orders it within
    the group (statistics sort before the raw record).

    Attributes:
        id_fields: Identifying field values, in ordinal order
        discriminant: 0 for a statistics payload, 1 for a raw record
    """

    id_fields: tuple[str, ...]
    discriminant: Literal[0, 1]

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "id_fields": ["A", "B"],
                "discriminant": 1
            }
        }

    @property
    def group_key(self) -> tuple[str, ...]:
        """Identifying prefix used for partitioning and grouping."""
        return self.id_fields

    @property
    def is_stats(self) -> bool:
        return self.discriminant == STATS_PAYLOAD

    def sort_key(self) -> tuple[tuple[str, ...], int]:
        return self.id_fields, self.discriminant
