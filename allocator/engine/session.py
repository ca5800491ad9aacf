import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable

from allocator.config import settings
from . import boundary, drag
from .allocation import allocate, invariant_violations, minutes_between
from .errors import EmptyTimeline, InvalidBoundary, NoActiveDrag, PersistenceWriteFailed, StaleTimeline
from .models import Difficulty, Edge, Segment, SegmentId, Timeline, default_weight
from .store import BoundaryPatch, SegmentPatch, TimelineStore

log = logging.getLogger(__name__)

DRAFT_ID_PREFIX = "draft-"


class SessionState(str, Enum):
    CLEAN = "CLEAN"
    DIRTY = "DIRTY"


@dataclass
class CommitReport:
    written: list[str] = field(default_factory=list)
    failures: list[PersistenceWriteFailed] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class _ActiveDrag:
    snapshot: drag.DragSnapshot
    was_dirty: bool


class TimelineSession:
    """
    Черновик одного таймлайна и все его правки.

    Правки синхронны и меняют только черновик; в хранилище пишет лишь
    commit(). После неудачного commit() черновик остаётся DIRTY, повторный
    вызов дописывает только то, что не записалось.
    """

    def __init__(
        self,
        store: TimelineStore,
        min_span_minutes: int | None = None,
        min_percent: int | None = None,
    ):
        self.store = store
        self.min_span_minutes = settings.min_span_minutes if min_span_minutes is None else min_span_minutes
        self.min_percent = settings.drag_min_percent if min_percent is None else min_percent
        self.draft: Timeline | None = None
        self._baseline: Timeline | None = None
        self._dirty = False
        self._drag: _ActiveDrag | None = None
        self._pending_deletions: list[SegmentId] = []
        self._positions: dict[SegmentId, int] = {}

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> SessionState:
        return SessionState.DIRTY if self._dirty else SessionState.CLEAN

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    @property
    def segments(self) -> list[Segment]:
        return self._require_draft().segments

    def _require_draft(self) -> Timeline:
        if self.draft is None:
            raise RuntimeError("no timeline loaded")
        return self.draft

    async def open(self, owner_id: int) -> Timeline:
        timeline = await self.store.fetch_timeline(owner_id)
        self.load(timeline)
        return self.draft

    async def reload(self) -> Timeline:
        return await self.open(self._require_draft().id)

    def load(self, timeline: Timeline) -> None:
        self._baseline = timeline.model_copy(deep=True)
        draft = timeline.model_copy(deep=True)
        draft.segments = allocate(draft)
        self.draft = draft
        self._dirty = False
        self._drag = None
        self._pending_deletions = []
        self._positions = {s.id: position for position, s in enumerate(timeline.segments)}
        log.info("Loaded timeline %s with %s sessions (version %s)", timeline.id, len(timeline.segments), timeline.version)

    def discard(self) -> None:
        if self._baseline is None:
            return
        log.info("Discarding uncommitted edits of timeline %s", self._baseline.id)
        self.load(self._baseline)

    def _replace(self, candidate: Timeline) -> None:
        if not candidate.segments:
            raise EmptyTimeline(f"timeline {candidate.id} must keep at least one session")
        candidate.segments = allocate(candidate)
        problems = invariant_violations(candidate)
        if problems:
            log.info("Rejected edit of timeline %s: %s", candidate.id, "; ".join(problems))
            raise InvalidBoundary("; ".join(problems))
        self.draft = candidate
        self._dirty = True

    # ------------------------------------------------------------------- drag

    def begin_drag(self, handle: int) -> None:
        draft = self._require_draft()
        self._drag = _ActiveDrag(snapshot=drag.snapshot(draft.weights, handle), was_dirty=self._dirty)

    def apply_drag(self, handle: int, pointer_fraction: float) -> list[Segment]:
        if self._drag is None or self._drag.snapshot.handle != handle:
            self.begin_drag(handle)
        snap = self._drag.snapshot

        left, right = drag.renegotiate(snap, pointer_fraction, self.min_percent)
        candidate = self._require_draft().model_copy(deep=True)
        candidate.segments[handle].weight = left
        candidate.segments[handle + 1].weight = right
        self._replace(candidate)
        return self.draft.segments

    def end_drag(self) -> list[Segment]:
        if self._drag is None:
            raise NoActiveDrag("no drag gesture in progress")
        self._drag = None
        return self._require_draft().segments

    def cancel_drag(self) -> list[Segment]:
        if self._drag is None:
            raise NoActiveDrag("no drag gesture in progress")
        active, self._drag = self._drag, None
        candidate = self._require_draft().model_copy(deep=True)
        for segment, weight in zip(candidate.segments, active.snapshot.weights):
            segment.weight = weight
        self._replace(candidate)
        self._dirty = active.was_dirty
        return self.draft.segments

    # -------------------------------------------------------- boundary & span

    def apply_boundary_edit(self, segment_id: SegmentId, edge: Edge | str, moment: datetime) -> list[Segment]:
        draft = self._require_draft()
        edit = boundary.propagate(draft, segment_id, edge, moment, self.min_span_minutes)
        candidate = draft.model_copy(deep=True)
        candidate.start, candidate.end = edit.start, edit.end
        candidate.segments[edit.index].weight = edit.weight
        self._replace(candidate)
        self._drag = None
        return self.draft.segments

    def shift_timeline(self, new_start: datetime) -> list[Segment]:
        draft = self._require_draft()
        candidate = draft.model_copy(deep=True)
        candidate.start = new_start
        candidate.end = new_start + (draft.end - draft.start)
        self._replace(candidate)
        self._drag = None
        return self.draft.segments

    def resize_timeline(self, new_end: datetime) -> list[Segment]:
        draft = self._require_draft()
        span = minutes_between(new_end, draft.start)
        if span < self.min_span_minutes:
            raise InvalidBoundary(f"timeline would span {span} minutes, at least {self.min_span_minutes} required")
        candidate = draft.model_copy(deep=True)
        candidate.end = new_end
        self._replace(candidate)
        self._drag = None
        return self.draft.segments

    # ------------------------------------------------------------ add / remove

    def add_segment(
        self,
        weight: float | None = None,
        title: str = "",
        difficulty: Difficulty | str | None = None,
    ) -> Segment:
        candidate = self._require_draft().model_copy(deep=True)
        candidate.segments.append(Segment(
            id=f"{DRAFT_ID_PREFIX}{uuid.uuid4().hex[:12]}",
            weight=weight if weight is not None else self._default_weight(difficulty),
            title=title or f"Session {len(candidate.segments) + 1}",
            difficulty=difficulty,
        ))
        self._replace(candidate)
        self._drag = None
        return self.draft.segments[-1]

    def remove_segment(self, segment_id: SegmentId) -> list[Segment]:
        draft = self._require_draft()
        index = draft.index_of(segment_id)
        if len(draft.segments) == 1:
            raise EmptyTimeline(f"cannot remove {segment_id!r}, the last session of timeline {draft.id}")
        candidate = draft.model_copy(deep=True)
        del candidate.segments[index]
        self._replace(candidate)
        self._drag = None
        if self._is_persisted(segment_id):
            self._pending_deletions.append(segment_id)
        return self.draft.segments

    @staticmethod
    def _default_weight(difficulty: Difficulty | str | None) -> float:
        return default_weight(difficulty) if difficulty else settings.default_weight

    def _is_persisted(self, segment_id: SegmentId) -> bool:
        return any(s.id == segment_id for s in self._baseline.segments)

    # ------------------------------------------------------------------ commit

    async def commit(self) -> CommitReport:
        draft = self._require_draft()
        baseline = self._baseline
        report = CommitReport()
        # the gesture ends with the commit
        self._drag = None
        if not self._dirty:
            return report

        try:
            version = await self.store.claim_version(draft.id, baseline.version)
        except StaleTimeline:
            raise
        except Exception as exc:
            failure = PersistenceWriteFailed("timeline", draft.id, exc)
            log.error("%s; nothing written", failure)
            report.failures.append(failure)
            return report
        baseline.version = draft.version = version

        span_patch: BoundaryPatch = {}
        if draft.start != baseline.start:
            span_patch["start_at"] = draft.start
        if draft.end != baseline.end:
            span_patch["end_at"] = draft.end
        if span_patch:
            try:
                await self.store.persist_timeline_boundary(draft.id, span_patch)
            except Exception as exc:
                failure = PersistenceWriteFailed("timeline", draft.id, exc)
                log.error("%s; session writes skipped", failure)
                report.failures.append(failure)
                return report
            baseline.start, baseline.end = draft.start, draft.end
            report.written.append(f"timeline:{draft.id}")

        deletions = list(self._pending_deletions)
        results = await self._gather(report, deletions, [self.store.delete_segment(i) for i in deletions])
        for segment_id, ok in zip(deletions, results):
            if ok:
                self._pending_deletions.remove(segment_id)
                self._positions.pop(segment_id, None)
                baseline.segments = [s for s in baseline.segments if s.id != segment_id]

        created = [(p, s) for p, s in enumerate(draft.segments) if not self._is_persisted(s.id)]
        new_ids = await self._gather(report, [s.id for _, s in created], [
            self.store.create_segment(draft.id, self._fields(s, p)) for p, s in created
        ])
        renamed = {}
        for (position, segment), new_id in zip(created, new_ids):
            if new_id is not None:
                renamed[segment.id] = new_id
                segment.id = new_id
                baseline.segments.append(segment.model_copy())
                self._positions[new_id] = position
        if self.draft is not draft:
            # edited while the writes were in flight
            for segment in self.draft.segments:
                if segment.id in renamed:
                    segment.id = renamed[segment.id]

        by_id = {s.id: s for s in baseline.segments}
        patches: dict[SegmentId, SegmentPatch] = {}
        for position, segment in enumerate(draft.segments):
            persisted = by_id.get(segment.id)
            if persisted is None:
                continue
            patch = self._diff(persisted, segment)
            if self._positions.get(segment.id) != position:
                patch["position"] = position
            if patch:
                patches[segment.id] = patch

        updated = list(patches)
        results = await self._gather(report, updated, [self.store.persist_segment(i, patches[i]) for i in updated])
        for segment_id, ok in zip(updated, results):
            if ok:
                fields = dict(patches[segment_id])
                if "position" in fields:
                    self._positions[segment_id] = fields.pop("position")
                by_id[segment_id] = by_id[segment_id].model_copy(update=fields)
        baseline.segments = [by_id[s.id] for s in baseline.segments]

        if report.ok:
            self._baseline = draft.model_copy(deep=True)
            self._dirty = self.draft is not draft
            log.info("Committed timeline %s (%s writes, version %s)", draft.id, len(report.written), version)
        else:
            log.warning(
                "Timeline %s partially committed: %s written, %s failed",
                draft.id, len(report.written), len(report.failures),
            )
        return report

    async def _gather(self, report: CommitReport, ids: list, writes: list[Awaitable]) -> list:
        results = await asyncio.gather(*writes, return_exceptions=True)
        outcome = []
        for target_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failure = PersistenceWriteFailed("segment", target_id, result)
                log.warning("%s", failure)
                report.failures.append(failure)
                outcome.append(None)
            else:
                report.written.append(f"segment:{target_id}")
                outcome.append(True if result is None else result)
        return outcome

    @staticmethod
    def _fields(segment: Segment, position: int) -> dict[str, Any]:
        return {
            "title": segment.title,
            "difficulty": segment.difficulty.value if segment.difficulty else None,
            "weight": segment.weight,
            "duration_minutes": segment.duration_minutes,
            "start_at": segment.start_at,
            "end_at": segment.end_at,
            "position": position,
        }

    @staticmethod
    def _diff(persisted: Segment, segment: Segment) -> SegmentPatch:
        patch: SegmentPatch = {}
        for name in ("weight", "duration_minutes", "start_at", "end_at"):
            value = getattr(segment, name)
            if getattr(persisted, name) != value:
                patch[name] = value
        return patch
