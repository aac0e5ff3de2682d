from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ScheduleRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    stop_name: str
    arrival_time: int  # Seconds since the epoch


class ScheduleRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    stop_name: str
    arrival_time: int
    display_time: str  # e.g. "5:02 PM"


class RowUpdate(BaseModel):
    kind: str  # insert / remove / change
    position: int
    row: Optional[ScheduleRow] = None  # None for removals


class ScheduleResponse(BaseModel):
    title: str
    stop_name: Optional[str] = None
    rows: List[ScheduleRow]


class ClientMessage(BaseModel):
    type: str = Field(..., pattern="^(tap|back)$")
    position: Optional[int] = Field(None, ge=0)
