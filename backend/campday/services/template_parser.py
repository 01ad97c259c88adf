"""
Template Parser - turn a template's flat per-division block list into the
stacker's inputs: an ordered activity queue, the fixed blocks, and the wall.

Blocks tagged with an explicit `role` keep it. Untagged blocks go through the
legacy name adapter (substring match on the event name), which is how
templates imported from older camps are classified.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from campday.services.timeline import (
    BlockRole,
    TimeBlock,
    blocks_for_division,
    flex_window,
    normalize_division_blocks,
)

logger = logging.getLogger(__name__)

FIXED_EVENTS = ["lunch", "snack", "snacks"]
WALL_EVENTS = ["dismissal"]
PINNED_EVENTS = ["lunch", "snack", "snacks", "dismissal", "arrival", "davening", "tefillah", "mincha"]
SCHEDULABLE_TYPES = {"slot", "activity", "sports", "special", "smart", "league", "specialty_league"}


@dataclass
class ParsedTemplate:
    division: str
    activity_queue: List[TimeBlock] = field(default_factory=list)
    fixed_blocks: List[TimeBlock] = field(default_factory=list)  # fixed + split halves + the wall
    wall_time: Optional[int] = None
    wall_block: Optional[TimeBlock] = None
    all_blocks: List[TimeBlock] = field(default_factory=list)

    @property
    def block_starts(self) -> List[int]:
        """Every distinct block start, ascending. A restart only snaps onto one of these."""
        return sorted({block.start_minute for block in self.all_blocks})


def _matches_any(event_name: str, names: List[str]) -> bool:
    lowered = (event_name or "").lower()
    return any(n in lowered for n in names)


def is_wall_event(event_name: str) -> bool:
    return _matches_any(event_name, WALL_EVENTS)


def is_fixed_event(event_name: str) -> bool:
    return _matches_any(event_name, FIXED_EVENTS)


def is_pinned_event(event_name: str) -> bool:
    return _matches_any(event_name, PINNED_EVENTS)


def is_schedulable_type(block_type: str, event_name: str) -> bool:
    t = (block_type or "").lower()
    if t in SCHEDULABLE_TYPES:
        return True
    return t == "pinned" and not is_pinned_event(event_name)


def legacy_role_for(block: TimeBlock) -> BlockRole:
    """Name-based role for an untagged block (ignores the one-wall rule)."""
    if is_wall_event(block.event_name):
        return BlockRole.wall
    if is_fixed_event(block.event_name):
        return BlockRole.fixed
    if is_schedulable_type(block.block_type, block.event_name):
        return BlockRole.activity
    return BlockRole.fixed


def classify_blocks(blocks: List[TimeBlock]) -> List[TimeBlock]:
    """Assign a role to every block; only the first wall in the list stays a wall."""
    wall_seen = False
    for block in blocks:
        role = block.role if block.role is not None else legacy_role_for(block)
        if role == BlockRole.wall:
            if wall_seen:
                role = BlockRole.fixed
            wall_seen = True
        block.role = role
        if role == BlockRole.activity:
            if block.flex is None:
                block.flex = flex_window(block.duration)
        else:
            block.flex = None
    return blocks


def parse_template_for_division(records: List[Dict[str, Any]], division: str) -> ParsedTemplate:
    blocks = classify_blocks(normalize_division_blocks(blocks_for_division(records, division)))

    parsed = ParsedTemplate(division=str(division), all_blocks=blocks)
    for block in blocks:
        if block.role == BlockRole.activity:
            parsed.activity_queue.append(block)
            continue
        parsed.fixed_blocks.append(block)
        if block.role == BlockRole.wall:
            parsed.wall_time = block.start_minute
            parsed.wall_block = block

    logger.debug(
        "[%s] Parsed template: %d activities, %d fixed, wall=%s",
        division, len(parsed.activity_queue), len(parsed.fixed_blocks), parsed.wall_time,
    )
    return parsed


def find_wall(blocks: List[TimeBlock]) -> Optional[TimeBlock]:
    """First wall in an already-built timeline (explicit role first, then by name)."""
    for block in blocks:
        if block.role == BlockRole.wall:
            return block
    for block in blocks:
        if block.role is None and is_wall_event(block.event_name):
            return block
    return None
