from datetime import timedelta

import pytest

from allocator.engine.boundary import propagate, proportional_weight
from allocator.engine.errors import InvalidBoundary, UnknownSegment
from allocator.engine.models import Edge
from allocator.engine.session import SessionState, TimelineSession
from tests.conftest import START, MemoryStore, make_timeline


@pytest.fixture
def session():
    timeline = make_timeline([60, 100, 140], minutes=300)
    editor = TimelineSession(MemoryStore(timeline))
    editor.load(timeline)
    return editor


def test_interior_edit_keeps_span(session):
    session.apply_boundary_edit(2, Edge.END, START + timedelta(minutes=180))

    assert session.segments[1].weight == 133
    assert session.draft.start == START
    assert session.draft.end == START + timedelta(minutes=300)
    assert session.state is SessionState.DIRTY


def test_first_start_moves_timeline_start(session):
    earlier = START - timedelta(minutes=60)
    session.apply_boundary_edit(1, "start", earlier)

    assert session.draft.start == earlier
    assert session.segments[0].weight == 120
    assert [s.duration_minutes for s in session.segments] == [120, 100, 140]


def test_last_end_moves_timeline_end(session):
    later = START + timedelta(minutes=360)
    session.apply_boundary_edit(3, Edge.END, later)

    assert session.draft.end == later
    assert session.segments[-1].end_at == later
    assert [s.duration_minutes for s in session.segments] == [60, 100, 200]


def test_boundary_round_trip_restores_weights(session):
    session.apply_boundary_edit(1, Edge.START, START - timedelta(minutes=60))
    session.apply_boundary_edit(1, Edge.START, START)

    assert [s.weight for s in session.segments] == [60, 100, 140]
    assert [s.duration_minutes for s in session.segments] == [60, 100, 140]


def test_inverted_session_is_rejected(session):
    before = session.draft
    with pytest.raises(InvalidBoundary):
        session.apply_boundary_edit(2, Edge.END, START + timedelta(minutes=30))
    assert session.draft is before
    assert session.state is SessionState.CLEAN


def test_collapsed_timeline_is_rejected():
    timeline = make_timeline([1], minutes=60)
    with pytest.raises(InvalidBoundary):
        propagate(timeline, 1, Edge.END, START, min_span_minutes=1)


def test_unknown_segment(session):
    with pytest.raises(UnknownSegment):
        session.apply_boundary_edit(42, Edge.END, START)


def test_proportional_weight_falls_back_when_degenerate():
    assert proportional_weight(60, 0, 100, fallback=7) == 7
    assert proportional_weight(60, 120, 0, fallback=7) == 7
    assert proportional_weight(60, 120, 200, fallback=7) == 100


def test_shift_keeps_duration_and_weights(session):
    session.shift_timeline(START + timedelta(days=1))

    assert session.draft.start == START + timedelta(days=1)
    assert session.draft.end == START + timedelta(days=1, minutes=300)
    assert [s.duration_minutes for s in session.segments] == [60, 100, 140]


def test_resize_redistributes_by_weight(session):
    session.resize_timeline(START + timedelta(minutes=600))
    assert [s.duration_minutes for s in session.segments] == [120, 200, 280]


def test_resize_below_minimum_span_is_rejected(session):
    with pytest.raises(InvalidBoundary):
        session.resize_timeline(START)
    assert session.state is SessionState.CLEAN
