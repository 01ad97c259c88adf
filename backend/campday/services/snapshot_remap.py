"""
Snapshot & Remap - carry already-executed assignments across a timeline change.

A snapshot of the assignment grid and the per-division timelines is taken
before a rebuild. Afterwards every entry whose old slot ended at or before
the transition is re-seated in the new timeline slot with the same (or a
nearby) time window and marked pinned, so the optimizer leaves it alone.
Entries after the transition are not carried over; that part of the day is
regenerated.
"""
from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from campday.services.errors import UNMATCHED_REMAP_SLOT, RebuildWarning
from campday.services.timeline import TimeBlock
from campday.utils.clock import range_label

logger = logging.getLogger(__name__)

REMAP_TOLERANCE_MIN = 10


@dataclass
class AssignmentEntry:
    activity_name: Optional[str] = None
    resource_name: Optional[str] = None
    pinned: bool = False
    preserved_from_before_cutover: bool = False
    continuation: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssignmentEntry":
        known = {"activity_name", "resource_name", "pinned", "preserved_from_before_cutover", "continuation"}
        return cls(
            activity_name=data.get("activity_name"),
            resource_name=data.get("resource_name"),
            pinned=bool(data.get("pinned", False)),
            preserved_from_before_cutover=bool(data.get("preserved_from_before_cutover", False)),
            continuation=bool(data.get("continuation", False)),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extra)
        result.update(
            {
                "activity_name": self.activity_name,
                "resource_name": self.resource_name,
                "pinned": self.pinned,
                "preserved_from_before_cutover": self.preserved_from_before_cutover,
                "continuation": self.continuation,
            }
        )
        return result


AssignmentRow = List[Optional[AssignmentEntry]]


def entries_from_grid(grid: Mapping[str, List[Any]]) -> Dict[str, AssignmentRow]:
    """Accept either AssignmentEntry objects or their dict form."""
    result: Dict[str, AssignmentRow] = {}
    for bunk, row in (grid or {}).items():
        entries: AssignmentRow = []
        for item in row or []:
            if item is None:
                entries.append(None)
            elif isinstance(item, AssignmentEntry):
                entries.append(copy.deepcopy(item))
            else:
                entries.append(AssignmentEntry.from_dict(item))
        result[str(bunk)] = entries
    return result


def entries_to_grid(entries: Mapping[str, AssignmentRow]) -> Dict[str, List[Optional[Dict[str, Any]]]]:
    return {bunk: [e.to_dict() if e is not None else None for e in row] for bunk, row in entries.items()}


@dataclass(frozen=True)
class RebuildSnapshot:
    old_assignments: Dict[str, AssignmentRow]
    old_timeline: Dict[str, List[TimeBlock]]
    transition_minute: int
    rebuild_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def capture_snapshot(
    assignments: Mapping[str, List[Any]],
    timeline_by_division: Mapping[str, List[TimeBlock]],
    transition_minute: int,
    rebuild_id: Optional[str] = None,
) -> RebuildSnapshot:
    """Deep-copy the live grid and timelines so later mutation can't leak in."""
    kwargs = {}
    if rebuild_id is not None:
        kwargs["rebuild_id"] = rebuild_id
    return RebuildSnapshot(
        old_assignments=entries_from_grid(assignments),
        old_timeline={div: copy.deepcopy(list(blocks)) for div, blocks in timeline_by_division.items()},
        transition_minute=transition_minute,
        **kwargs,
    )


@dataclass
class RemapResult:
    assignments: Dict[str, AssignmentRow] = field(default_factory=dict)
    placed_count: int = 0
    skipped_count: int = 0
    post_cutover_count: int = 0
    warnings: List[RebuildWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "placed_count": self.placed_count,
            "skipped_count": self.skipped_count,
            "post_cutover_count": self.post_cutover_count,
            "warnings": [w.to_dict() for w in self.warnings],
        }


def index_slots_by_range(slots: List[TimeBlock]) -> Dict[Tuple[int, int], int]:
    index: Dict[Tuple[int, int], int] = {}
    for idx, slot in enumerate(slots):
        index.setdefault((slot.start_minute, slot.end_minute), idx)
    return index


def find_remap_slot(
    old_start: int,
    old_end: int,
    new_slots: List[TimeBlock],
    by_range: Optional[Dict[Tuple[int, int], int]] = None,
) -> int:
    """
    New slot index for an old (start, end) window, or -1.

    Exact lookup, then an exact scan, then the nearest slot by combined
    start+end distance if that distance is within REMAP_TOLERANCE_MIN
    (earliest slot wins ties).
    """
    if by_range is not None:
        idx = by_range.get((old_start, old_end))
        if idx is not None:
            return idx
    for idx, slot in enumerate(new_slots):
        if slot.start_minute == old_start and slot.end_minute == old_end:
            return idx

    best_idx = -1
    best_dist = None
    for idx, slot in enumerate(new_slots):
        dist = abs(slot.start_minute - old_start) + abs(slot.end_minute - old_end)
        if best_dist is None or dist < best_dist:
            best_idx, best_dist = idx, dist
    if best_dist is not None and best_dist <= REMAP_TOLERANCE_MIN:
        return best_idx
    return -1


def remap_preserved_assignments(
    snapshot: RebuildSnapshot,
    new_timeline_by_division: Mapping[str, List[TimeBlock]],
    bunk_divisions: Mapping[str, str],
) -> RemapResult:
    result = RemapResult()
    transition = snapshot.transition_minute

    for bunk, old_row in snapshot.old_assignments.items():
        division = bunk_divisions.get(bunk)
        if division is None:
            carried = sum(1 for e in old_row if e is not None)
            if carried:
                result.skipped_count += carried
                logger.warning("Bunk %s has no division; %d entries not carried over", bunk, carried)
            continue

        old_slots = snapshot.old_timeline.get(division, [])
        new_slots = list(new_timeline_by_division.get(division, []))
        by_range = index_slots_by_range(new_slots)
        new_row: AssignmentRow = [None] * len(new_slots)

        def place(i: int, entry: AssignmentEntry) -> None:
            old_slot = old_slots[i]
            idx = find_remap_slot(old_slot.start_minute, old_slot.end_minute, new_slots, by_range)
            if idx < 0:
                result.skipped_count += 1
                message = (
                    f"No slot near {range_label(old_slot.start_minute, old_slot.end_minute)} for "
                    f"bunk {bunk} ({entry.activity_name}); entry dropped"
                )
                result.warnings.append(RebuildWarning(UNMATCHED_REMAP_SLOT, message, division))
                logger.warning("[%s] %s", division, message)
                return
            moved = copy.deepcopy(entry)
            moved.pinned = True
            moved.preserved_from_before_cutover = True
            new_row[idx] = moved
            result.placed_count += 1

        i = 0
        while i < len(old_row):
            entry = old_row[i]
            if entry is None:
                i += 1
                continue
            if i >= len(old_slots):
                result.skipped_count += 1
                logger.warning("[%s] Bunk %s entry at slot %d has no timeline slot", division, bunk, i)
                i += 1
                continue
            if old_slots[i].end_minute > transition:
                result.post_cutover_count += 1
                i += 1
                continue
            if entry.continuation:
                # head slot is missing or was not carried; nothing to attach to
                result.skipped_count += 1
                logger.info("[%s] Orphan continuation for bunk %s at slot %d skipped", division, bunk, i)
                i += 1
                continue

            place(i, entry)
            j = i + 1
            while (
                j < len(old_row)
                and j < len(old_slots)
                and old_row[j] is not None
                and old_row[j].continuation
                and old_row[j].activity_name == entry.activity_name
                and old_slots[j].end_minute <= transition
            ):
                place(j, old_row[j])
                j += 1
            i = j

        result.assignments[bunk] = new_row

    logger.info(
        "Remap at %d: %d placed, %d skipped, %d after cutover",
        transition, result.placed_count, result.skipped_count, result.post_cutover_count,
    )
    return result
