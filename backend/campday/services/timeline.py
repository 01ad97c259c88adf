"""
Division Timeline Model - variable-length time blocks per division.

Each division owns an ordered list of TimeBlocks. Bunk assignment arrays are
indexed by a block's position in its division's list (slot_index), so the
list must stay sorted and free of exact duplicates. Split tiles are the one
sanctioned overlap: a "split" template block becomes two split_half blocks
that meet at the parent's midpoint.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from campday.utils.clock import minutes_to_clock_label, parse_clock_string, range_label, round_half_up

logger = logging.getLogger(__name__)

FLEX_PERCENT = 0.25


class BlockRole(str, Enum):
    activity = "activity"
    fixed = "fixed"
    wall = "wall"
    split_half = "split_half"


@dataclass(frozen=True)
class FlexWindow:
    min: int
    max: int
    ideal: int

    @classmethod
    def rigid(cls, duration: int) -> "FlexWindow":
        return cls(min=duration, max=duration, ideal=duration)

    def to_dict(self) -> Dict[str, int]:
        return {"min": self.min, "max": self.max, "ideal": self.ideal}


def flex_window(duration: int) -> FlexWindow:
    """Elastic range of ±25% around the template duration."""
    return FlexWindow(
        min=round_half_up(duration * (1 - FLEX_PERCENT)),
        max=round_half_up(duration * (1 + FLEX_PERCENT)),
        ideal=duration,
    )


@dataclass
class TimeBlock:
    division: str
    start_minute: int
    end_minute: int
    event_name: str
    role: Optional[BlockRole] = None  # None until the template parser classifies it
    block_type: str = ""
    flex: Optional[FlexWindow] = None
    sub_events: Optional[List[Any]] = None

    # prep/main coupling
    is_prep_block: bool = False
    is_main_block: bool = False
    has_prep: bool = False
    main_activity_name: Optional[str] = None

    # split tiles
    split_half: Optional[int] = None
    split_sibling_name: Optional[str] = None
    split_parent_event: Optional[str] = None
    # template start of the block a prep/main or split pair was cut from
    pair_origin: Optional[int] = None

    # rebuild bookkeeping
    slot_index: Optional[int] = None
    truncated_at_cutover: bool = False
    original_end_minute: Optional[int] = None
    original_duration: Optional[int] = None
    flex_applied: bool = False
    rebuilt: bool = False

    @property
    def duration(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def ideal_duration(self) -> int:
        """Stacking length: the flex ideal for activities, the window length otherwise."""
        if self.flex is not None:
            return self.flex.ideal
        return self.duration

    @property
    def label(self) -> str:
        return range_label(self.start_minute, self.end_minute)

    @property
    def start_time(self) -> str:
        return minutes_to_clock_label(self.start_minute)

    @property
    def end_time(self) -> str:
        return minutes_to_clock_label(self.end_minute)

    def copy(self, **changes: Any) -> "TimeBlock":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "division": self.division,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "startMin": self.start_minute,
            "endMin": self.end_minute,
            "event": self.event_name,
            "type": self.block_type,
            "role": self.role.value if self.role else None,
            "label": self.label,
        }
        if self.slot_index is not None:
            result["slotIndex"] = self.slot_index
        if self.flex is not None:
            result["flex"] = self.flex.to_dict()
        if self.sub_events:
            result["subEvents"] = self.sub_events
        if self.is_prep_block:
            result["isPrepBlock"] = True
        if self.is_main_block:
            result["isMainBlock"] = True
            result["hasPrep"] = self.has_prep
        if self.main_activity_name:
            result["mainActivityName"] = self.main_activity_name
        if self.split_half is not None:
            result["splitHalf"] = self.split_half
            result["splitSiblingName"] = self.split_sibling_name
            result["splitParentEvent"] = self.split_parent_event
        if self.pair_origin is not None:
            result["pairOrigin"] = self.pair_origin
        if self.truncated_at_cutover:
            result["truncatedAtCutover"] = True
            result["originalEndMin"] = self.original_end_minute
        if self.original_duration is not None:
            result["originalDuration"] = self.original_duration
            result["flexApplied"] = self.flex_applied
        if self.rebuilt:
            result["rebuilt"] = True
        return result


def _coerce_role(value: Any) -> Optional[BlockRole]:
    if isinstance(value, BlockRole):
        return value
    if isinstance(value, str):
        try:
            return BlockRole(value.strip().lower())
        except ValueError:
            return None
    return None


def block_from_record(record: Dict[str, Any], division: Optional[str] = None) -> Optional[TimeBlock]:
    """
    Build a TimeBlock from a stored/template record.

    Stored timelines carry startMin/endMin; templates carry clock strings.
    Returns None when the times don't parse or the range is empty.
    """
    start = record.get("startMin")
    end = record.get("endMin")
    if not isinstance(start, int) or isinstance(start, bool):
        start = parse_clock_string(record.get("startTime"))
    if not isinstance(end, int) or isinstance(end, bool):
        end = parse_clock_string(record.get("endTime"))
    if start is None or end is None or end <= start:
        return None

    div = division if division is not None else record.get("division")
    if div is None:
        return None

    flex_data = record.get("flex")
    flex = None
    if isinstance(flex_data, dict) and {"min", "max", "ideal"} <= set(flex_data):
        flex = FlexWindow(min=int(flex_data["min"]), max=int(flex_data["max"]), ideal=int(flex_data["ideal"]))

    split_half = record.get("splitHalf")
    return TimeBlock(
        division=str(div),
        start_minute=start,
        end_minute=end,
        event_name=record.get("event") or record.get("type") or "Unknown",
        role=_coerce_role(record.get("role")),
        block_type=str(record.get("type") or ""),
        flex=flex,
        sub_events=record.get("subEvents"),
        is_prep_block=bool(record.get("isPrepBlock", False)),
        is_main_block=bool(record.get("isMainBlock", False)),
        has_prep=bool(record.get("hasPrep", False)),
        main_activity_name=record.get("mainActivityName"),
        split_half=int(split_half) if split_half in (1, 2) else None,
        split_sibling_name=record.get("splitSiblingName"),
        split_parent_event=record.get("splitParentEvent"),
        pair_origin=record.get("pairOrigin"),
        slot_index=record.get("slotIndex"),
        truncated_at_cutover=bool(record.get("truncatedAtCutover", False)),
        original_end_minute=record.get("originalEndMin"),
        original_duration=record.get("originalDuration"),
        flex_applied=bool(record.get("flexApplied", False)),
        rebuilt=bool(record.get("rebuilt", False)),
    )


def blocks_for_division(records: Iterable[Dict[str, Any]], division: str) -> List[TimeBlock]:
    """Parse, filter and stably sort one division's records."""
    blocks: List[TimeBlock] = []
    for record in records:
        if str(record.get("division")) != str(division):
            continue
        block = block_from_record(record, division=str(division))
        if block is not None:
            blocks.append(block)
    blocks.sort(key=lambda b: b.start_minute)
    return blocks


# ══════════════════════════════════════════════════════════════════════════
#  Split tiles
# ══════════════════════════════════════════════════════════════════════════

def _split_names(block: TimeBlock):
    first, second = "Activity 1", "Activity 2"
    subs = block.sub_events or []
    if len(subs) >= 2:
        names = []
        for sub in subs[:2]:
            if isinstance(sub, dict):
                names.append(sub.get("event") or "")
            else:
                names.append(str(sub or ""))
        first = names[0] or first
        second = names[1] or second
    elif "/" in (block.event_name or ""):
        parts = [p.strip() for p in block.event_name.split("/")]
        first = parts[0] or first
        second = parts[1] or second
    return first, second


def expand_split_tiles(blocks: List[TimeBlock]) -> List[TimeBlock]:
    """Replace every type=="split" block with its two half blocks."""
    expanded: List[TimeBlock] = []
    for block in blocks:
        if block.block_type.lower() != "split":
            expanded.append(block)
            continue
        if block.duration < 2:
            logger.warning(
                "Split tile %r at %s is too short to halve; keeping it whole", block.event_name, block.label
            )
            expanded.append(block)
            continue

        mid = (block.start_minute + block.end_minute) // 2
        first, second = _split_names(block)
        common = dict(
            role=BlockRole.split_half,
            block_type="split_half",
            split_parent_event=block.event_name,
            pair_origin=block.start_minute,
            flex=None,
        )
        expanded.append(
            block.copy(end_minute=mid, event_name=first, split_half=1, split_sibling_name=second, **common)
        )
        expanded.append(
            block.copy(start_minute=mid, event_name=second, split_half=2, split_sibling_name=first, **common)
        )
        logger.debug(
            "Expanded split tile %r into %s / %s at %s", block.event_name, first, second, minutes_to_clock_label(mid)
        )
    return expanded


# ══════════════════════════════════════════════════════════════════════════
#  Overlap consolidation
# ══════════════════════════════════════════════════════════════════════════

def _is_split(block: TimeBlock) -> bool:
    return block.role == BlockRole.split_half or block.block_type.lower() in ("split", "split_half")


def consolidate_blocks(blocks: List[TimeBlock]) -> List[TimeBlock]:
    """
    Drop exact duplicates (keep the first) and tolerate any other overlap.

    Split halves are never deduplicated. Other overlaps are kept as two
    blocks because consumers key slots by exact time range.
    """
    if not blocks:
        return []

    result: List[TimeBlock] = []
    current = blocks[0]
    for nxt in blocks[1:]:
        if nxt.start_minute < current.end_minute:
            if _is_split(current) or _is_split(nxt):
                pass
            elif nxt.start_minute == current.start_minute and nxt.end_minute == current.end_minute:
                logger.info(
                    "[%s] Duplicate block %r at %s dropped (keeping %r)",
                    nxt.division, nxt.event_name, nxt.label, current.event_name,
                )
                continue
            else:
                logger.warning(
                    "[%s] Overlapping blocks kept: %r (%s) and %r (%s)",
                    nxt.division, current.event_name, current.label, nxt.event_name, nxt.label,
                )
        result.append(current)
        current = nxt
    result.append(current)
    return result


def normalize_division_blocks(blocks: List[TimeBlock]) -> List[TimeBlock]:
    """Sort, expand split tiles, re-sort and consolidate one division's blocks."""
    ordered = sorted(blocks, key=lambda b: b.start_minute)
    expanded = expand_split_tiles(ordered)
    expanded.sort(key=lambda b: b.start_minute)
    return consolidate_blocks(expanded)


def assign_slot_indices(blocks: List[TimeBlock]) -> List[TimeBlock]:
    for idx, block in enumerate(blocks):
        block.slot_index = idx
    return blocks


def build_division_timelines(
    records: List[Dict[str, Any]],
    division_names: Optional[Iterable[str]] = None,
) -> Dict[str, List[TimeBlock]]:
    """
    Build the per-division slot arrays bunk assignments index into.

    Every name in division_names gets an entry, even when it has no blocks.
    """
    names: List[str] = []
    for record in records or []:
        div = record.get("division")
        if div is not None and str(div) not in names:
            names.append(str(div))
    for name in division_names or []:
        if str(name) not in names:
            names.append(str(name))

    timelines: Dict[str, List[TimeBlock]] = {}
    for name in names:
        blocks = normalize_division_blocks(blocks_for_division(records or [], name))
        timelines[name] = assign_slot_indices(blocks)
    return timelines


def find_slot_for_time_range(slots: List[TimeBlock], start_minute: int, end_minute: int) -> int:
    """Exact range match first, then the first slot containing the range; -1 if none."""
    for idx, slot in enumerate(slots):
        if slot.start_minute == start_minute and slot.end_minute == end_minute:
            return idx
    for idx, slot in enumerate(slots):
        if slot.start_minute <= start_minute and slot.end_minute >= end_minute:
            return idx
    return -1


def timeline_to_records(timeline: Dict[str, List[TimeBlock]]) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    for blocks in timeline.values():
        records.extend(b.to_dict() for b in blocks)
    return records
