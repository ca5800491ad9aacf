from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProjectBase(BaseModel):
    title: str = ""
    start_at: datetime
    end_at: datetime


class ProjectCreate(ProjectBase):
    @model_validator(mode="after")
    def check_span(self) -> "ProjectCreate":
        if self.end_at <= self.start_at:
            raise ValueError("end_at must be after start_at")
        return self


class Project(ProjectBase):
    model_config = ConfigDict(from_attributes=True)
    iid: int = Field(gt=0)
    version: int = 0
    created_at: datetime
