from datetime import date

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import TypeAdapter


# 9999-12-30T00:00:00Z, so every timezone offset still lands on a valid date.
MAX_TIMESTAMP = 253402128000


class ActivityRecord(BaseModel):
    """Single activity entry returned by the Codeberg heatmap API."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: int = Field(ge=0, le=MAX_TIMESTAMP)
    contributions: int = Field(ge=0)


class DayCell(BaseModel):
    """One calendar day in the rendered grid."""

    model_config = ConfigDict(frozen=True)

    date: date
    count: int = Field(ge=0)
    is_today: bool = False


class MonthLabel(BaseModel):
    """Month caption anchored to a week column."""

    model_config = ConfigDict(frozen=True)

    col: int
    label: str


class HeatmapGrid(BaseModel):
    """Calendar grid of week columns, Sunday first."""

    model_config = ConfigDict(frozen=True)

    weeks: list[list[DayCell]]
    month_labels: list[MonthLabel]
    max_count: int = Field(ge=1)
    total: int = Field(ge=0)


activity_records_adapter = TypeAdapter(list[ActivityRecord])
