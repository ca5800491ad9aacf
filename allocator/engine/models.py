from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnknownSegment

SegmentId = int | str


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


DIFFICULTY_WEIGHTS: dict[Difficulty, float] = {
    Difficulty.EASY: 60,
    Difficulty.MEDIUM: 100,
    Difficulty.HARD: 140,
}
FALLBACK_WEIGHT: float = 100


def default_weight(difficulty: Difficulty | str | None = None) -> float:
    if difficulty is None:
        return FALLBACK_WEIGHT
    try:
        return DIFFICULTY_WEIGHTS[Difficulty(difficulty)]
    except ValueError:
        return FALLBACK_WEIGHT


class Edge(str, Enum):
    START = "start"
    END = "end"


class Segment(BaseModel):
    """
    Одна сессия таймлайна. Хранится только вес, остальные поля
    выводятся из него при распределении.
    """
    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    id: SegmentId
    weight: float = Field(gt=0)
    title: str = ""
    difficulty: Difficulty | None = None

    duration_minutes: int = 0
    start_at: datetime | None = None
    end_at: datetime | None = None
    percentage: int = 0


class Timeline(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    start: datetime
    end: datetime
    version: int = 0
    segments: list[Segment] = Field(default_factory=list)

    @property
    def total_weight(self) -> float:
        return sum(s.weight for s in self.segments)

    @property
    def weights(self) -> list[float]:
        return [s.weight for s in self.segments]

    def index_of(self, segment_id: SegmentId) -> int:
        for index, segment in enumerate(self.segments):
            if segment.id == segment_id:
                return index
        raise UnknownSegment(f"segment {segment_id!r} is not part of timeline {self.id}")
