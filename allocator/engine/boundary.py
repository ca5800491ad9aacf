import logging
from dataclasses import dataclass
from datetime import datetime

from .allocation import allocate, minutes_between, round_half_up
from .errors import InvalidBoundary
from .models import Edge, SegmentId, Timeline

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundaryEdit:
    index: int
    weight: float
    start: datetime
    end: datetime


def proportional_weight(duration: int, other_minutes: int, other_weight: float, fallback: float) -> float:
    """
    Вес, при котором сессия длительностью `duration` стоит к остальным
    сессиям в той же пропорции, что их минуты к их весам.
    """
    if other_weight > 0 and other_minutes > 0:
        return max(1, round_half_up(duration / other_minutes * other_weight))
    log.debug("Cannot infer weight from %s/%s minutes, keeping %s", duration, other_minutes, fallback)
    return fallback


def propagate(
    timeline: Timeline,
    segment_id: SegmentId,
    edge: Edge,
    moment: datetime,
    min_span_minutes: int = 1,
) -> BoundaryEdit:
    edge = Edge(edge)
    index = timeline.index_of(segment_id)
    current = allocate(timeline)[index]

    if edge is Edge.START:
        new_start, new_end = moment, current.end_at
    else:
        new_start, new_end = current.start_at, moment

    duration = minutes_between(new_end, new_start)
    if duration <= 0:
        raise InvalidBoundary(
            f"session {segment_id!r} would last {duration} minutes ({new_start} - {new_end})"
        )

    span_start, span_end = timeline.start, timeline.end
    if edge is Edge.START and index == 0:
        span_start = moment
    elif edge is Edge.END and index == len(timeline.segments) - 1:
        span_end = moment

    total_minutes = minutes_between(span_end, span_start)
    if total_minutes < min_span_minutes:
        raise InvalidBoundary(
            f"timeline would span {total_minutes} minutes, at least {min_span_minutes} required"
        )

    segment = timeline.segments[index]
    weight = proportional_weight(
        duration,
        total_minutes - duration,
        timeline.total_weight - segment.weight,
        fallback=segment.weight,
    )
    return BoundaryEdit(index=index, weight=weight, start=span_start, end=span_end)
