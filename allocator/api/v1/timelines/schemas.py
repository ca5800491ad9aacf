from datetime import datetime, timezone
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from allocator.engine.allocation import format_duration, minutes_between
from allocator.engine.models import Difficulty, Edge
from allocator.engine.session import CommitReport, TimelineSession


def naive_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


Moment = Annotated[datetime, AfterValidator(naive_utc)]


class SegmentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | str
    title: str = ""
    difficulty: Optional[Difficulty] = None
    weight: float
    duration_minutes: int
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    percentage: int


class TimelineView(BaseModel):
    project_iid: int
    start: datetime
    end: datetime
    version: int
    state: str
    dragging: bool
    total_minutes: int
    duration_label: str
    segments: list[SegmentView]

    @classmethod
    def of(cls, editor: TimelineSession) -> "TimelineView":
        draft = editor.draft
        total = minutes_between(draft.end, draft.start)
        return cls(
            project_iid=draft.id,
            start=draft.start,
            end=draft.end,
            version=draft.version,
            state=editor.state.value,
            dragging=editor.dragging,
            total_minutes=total,
            duration_label=format_duration(total),
            segments=[SegmentView.model_validate(s) for s in draft.segments],
        )


class DragStart(BaseModel):
    handle: int = Field(ge=0, description="Разделитель между сессиями handle и handle+1")


class DragMove(DragStart):
    pointer_fraction: float = Field(ge=0.0, le=1.0, description="Положение указателя по всей ширине дорожки")


class BoundaryEdit(BaseModel):
    edge: Edge
    moment: Moment


class SpanEdit(BaseModel):
    start: Optional[Moment] = None
    end: Optional[Moment] = None


class SegmentAdd(BaseModel):
    weight: Optional[float] = Field(default=None, gt=0)
    title: str = ""
    difficulty: Optional[Difficulty] = None


class WriteFailure(BaseModel):
    target: str
    target_id: int | str
    reason: str


class CommitResult(BaseModel):
    ok: bool
    written: list[str]
    failures: list[WriteFailure]

    @classmethod
    def of(cls, report: CommitReport) -> "CommitResult":
        return cls(
            ok=report.ok,
            written=report.written,
            failures=[
                WriteFailure(target=f.target, target_id=f.target_id, reason=str(f.cause))
                for f in report.failures
            ],
        )
