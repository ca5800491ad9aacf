import logging
import math
from datetime import datetime, timedelta
from fractions import Fraction

from .models import Segment, Timeline

log = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR
MINUTES_PER_WEEK = 7 * MINUTES_PER_DAY


def round_half_up(value: float | Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def minutes_between(end: datetime, start: datetime) -> int:
    return math.trunc((end - start).total_seconds() / 60)


def apportion(total: int, weights: list[float], minimum: int = 0) -> list[int]:
    """
    Делит целое `total` пропорционально весам методом наибольших остатков.

    Сумма результата всегда равна `total`: сначала раздаются целые части,
    затем недостающие единицы уходят долям с наибольшим дробным остатком
    (при равенстве остатков побеждает более ранняя доля). `minimum`
    соблюдается, только если `total` позволяет выдать его каждому.
    """
    count = len(weights)
    if count == 0:
        return []
    if total <= 0:
        return [0] * count

    exact_weights = [Fraction(w) for w in weights]
    weight_sum = sum(exact_weights)
    if weight_sum <= 0:
        log.warning("Degenerate allocation: total weight %s, splitting evenly", float(weight_sum))
        exact_weights = [Fraction(1)] * count
        weight_sum = Fraction(count)

    exact = [total * w / weight_sum for w in exact_weights]
    shares = [math.floor(x) for x in exact]
    remainder = total - sum(shares)
    by_remainder = sorted(range(count), key=lambda i: (-(exact[i] - shares[i]), i))
    for i in by_remainder[:remainder]:
        shares[i] += 1

    if minimum * count > total:
        minimum = 0
    for i in range(count):
        while shares[i] < minimum:
            donor = max(
                (j for j in range(count) if shares[j] > minimum),
                key=lambda j: (shares[j], -j),
            )
            shares[donor] -= 1
            shares[i] += 1
    return shares


def percentages(weights: list[float]) -> list[int]:
    return apportion(100, weights)


def allocate(timeline: Timeline) -> list[Segment]:
    """Длительности, даты и проценты каждой сессии по весам и границам таймлайна"""
    segments = timeline.segments
    if not segments:
        return []

    weights = timeline.weights
    total_minutes = minutes_between(timeline.end, timeline.start)
    if total_minutes <= 0:
        log.warning(
            "Degenerate allocation: timeline %s spans %s minutes, all sessions collapse to its start",
            timeline.id, total_minutes,
        )

    durations = apportion(total_minutes, weights, minimum=1)
    shares = percentages(weights)

    allocated = []
    cursor = timeline.start
    for segment, duration, share in zip(segments, durations, shares):
        end_at = cursor + timedelta(minutes=duration)
        allocated.append(segment.model_copy(update={
            "duration_minutes": duration,
            "start_at": cursor,
            "end_at": end_at,
            "percentage": share,
        }))
        cursor = end_at

    # sub-minute remainder of the span belongs to the last session
    if total_minutes > 0:
        allocated[-1] = allocated[-1].model_copy(update={"end_at": timeline.end})
    return allocated


def invariant_violations(timeline: Timeline) -> list[str]:
    segments = timeline.segments
    if not segments:
        return ["timeline has no sessions"]

    problems = []
    if any(s.weight <= 0 for s in segments):
        problems.append("every weight must be positive")
    if segments[0].start_at != timeline.start:
        problems.append("first session must start at the timeline start")
    if segments[-1].end_at != timeline.end:
        problems.append("last session must end at the timeline end")
    for left, right in zip(segments, segments[1:]):
        if left.end_at != right.start_at:
            problems.append(f"gap or overlap between {left.id!r} and {right.id!r}")
    if sum(s.percentage for s in segments) != 100:
        problems.append("percentages must sum to 100")
    return problems


def format_duration(minutes: int) -> str:
    if minutes < MINUTES_PER_HOUR:
        return f"{minutes} minutes"
    if minutes < MINUTES_PER_DAY:
        hours, mins = divmod(minutes, MINUTES_PER_HOUR)
        return f"{hours}h {mins}m" if mins else f"{hours} hour{'s' if hours > 1 else ''}"
    if minutes < MINUTES_PER_WEEK:
        days, rest = divmod(minutes, MINUTES_PER_DAY)
        hours = rest // MINUTES_PER_HOUR
        return f"{days}d {hours}h" if hours else f"{days} day{'s' if days > 1 else ''}"
    weeks, rest = divmod(minutes, MINUTES_PER_WEEK)
    days = rest // MINUTES_PER_DAY
    return f"{weeks}w {days}d" if days else f"{weeks} week{'s' if weeks > 1 else ''}"
