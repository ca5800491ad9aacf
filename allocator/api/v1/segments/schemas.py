from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class SegmentBase(BaseModel):
    project_iid: int
    position: int
    title: str = ""
    difficulty: Optional[str] = None
    weight: float
    duration_minutes: Optional[int] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None


class Segment(SegmentBase):
    model_config = ConfigDict(from_attributes=True)
    iid: int = Field(gt=0)
