"""
Stacking Engine - pack a division's remaining activities between a start
time and the wall (dismissal).

Phases:
  1. queue assembly     - drop past items, merge fixed blocks, stable sort
  2. initial placement  - greedy, in template order, drop what can't fit at min
  3. small-gap absorb   - ≤10 min leftover goes to the last activity
  4. gap distribution   - spread larger gaps across stretchable activities
  5. squeeze repair     - fix under-min activities or drop them
  6. coupling closure   - prep/main pairs and split halves survive together
  7. final gap pass
  8. output assembly    - TimeBlocks plus a synthesized wall block

The wall is never crossed. The only way an activity exceeds its flex max is
the last-resort dump when nothing else can absorb a gap.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from campday.services.timeline import BlockRole, FlexWindow, TimeBlock
from campday.utils.clock import minutes_to_clock_label

logger = logging.getLogger(__name__)

MIN_USEFUL_GAP = 10


@dataclass
class PlacedBlock:
    block: TimeBlock
    placed_start: int = 0
    placed_end: int = 0
    placed_duration: int = 0

    @property
    def is_activity(self) -> bool:
        return self.block.role == BlockRole.activity

    @property
    def flex(self) -> FlexWindow:
        if self.is_activity and self.block.flex is not None:
            return self.block.flex
        return FlexWindow.rigid(self.block.ideal_duration)

    @property
    def original_duration(self) -> int:
        return self.block.ideal_duration

    @property
    def flex_applied(self) -> bool:
        return self.placed_duration != self.original_duration

    @property
    def headroom(self) -> int:
        return self.flex.max - self.placed_duration

    @property
    def slack(self) -> int:
        return self.placed_duration - self.flex.min

    def to_block(self) -> TimeBlock:
        return self.block.copy(
            start_minute=self.placed_start,
            end_minute=self.placed_end,
            original_duration=self.original_duration,
            flex_applied=self.flex_applied,
            rebuilt=True,
            slot_index=None,
        )


@dataclass
class StackResult:
    blocks: List[TimeBlock] = field(default_factory=list)
    dropped: List[TimeBlock] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return sum(1 for b in self.dropped if b.role == BlockRole.activity)

    @property
    def dropped_names(self) -> List[str]:
        return [b.event_name for b in self.dropped if b.role == BlockRole.activity]


# ══════════════════════════════════════════════════════════════════════════
#  Position helpers
# ══════════════════════════════════════════════════════════════════════════

def recalculate_positions(placed: List[PlacedBlock], start_time: int) -> int:
    """Lay blocks end to end from start_time; returns the resulting end."""
    cursor = start_time
    for p in placed:
        p.placed_start = cursor
        p.placed_end = cursor + p.placed_duration
        cursor = p.placed_end
    return cursor


def _trailing_gap(placed: List[PlacedBlock], start_time: int, wall_time: int) -> int:
    end = placed[-1].placed_end if placed else start_time
    return wall_time - end


def _last_activity(placed: List[PlacedBlock]) -> Optional[PlacedBlock]:
    for p in reversed(placed):
        if p.is_activity:
            return p
    return None


def _dump_on_last_activity(placed: List[PlacedBlock], gap: int, division_name: str) -> int:
    last = _last_activity(placed)
    if last is None:
        logger.warning("[%s] %d min gap before the wall and no activity to absorb it", division_name, gap)
        return gap
    last.placed_duration += gap
    if last.placed_duration > last.flex.max:
        logger.warning(
            "[%s] Last-resort stretch: %s grows to %d min (%d over its max of %d)",
            division_name, last.block.event_name, last.placed_duration,
            last.placed_duration - last.flex.max, last.flex.max,
        )
    return 0


def distribute_extra_time(
    placed: List[PlacedBlock],
    start_time: int,
    wall_time: int,
    division_name: str = "",
) -> int:
    """
    Spread the trailing gap across activities that are still under their max.

    Each round gives every stretchable activity an even share (at least one
    minute) capped by its headroom. When nothing can stretch, whatever is left
    goes onto the last activity regardless of its max. Returns the gap that
    remains (only non-zero when there are no activities at all).
    """
    recalculate_positions(placed, start_time)
    gap = _trailing_gap(placed, start_time, wall_time)

    while gap > 0:
        stretchable = [p for p in placed if p.is_activity and p.headroom > 0]
        if not stretchable:
            gap = _dump_on_last_activity(placed, gap, division_name)
            break

        share = max(1, gap // len(stretchable))
        granted = 0
        for p in stretchable:
            remaining = gap - granted
            if remaining <= 0:
                break
            grant = min(share, p.headroom, remaining)
            p.placed_duration += grant
            granted += grant

        if granted == 0:
            gap = _dump_on_last_activity(placed, gap, division_name)
            break
        gap -= granted
        logger.debug("[%s] Distributed %d min across %d activities", division_name, granted, len(stretchable))

    recalculate_positions(placed, start_time)
    return gap


def compress_earlier_activities(placed: List[PlacedBlock], index: int, needed: int) -> int:
    """
    Take up to `needed` minutes from the activities before `index`, walking
    backward and never pushing any of them below its flex min.

    All-or-nothing: durations only change when the full amount is available.
    Returns the minutes recovered (either `needed` or 0).
    """
    plan = []
    recovered = 0
    for i in range(index - 1, -1, -1):
        if recovered >= needed:
            break
        p = placed[i]
        if not p.is_activity or p.slack <= 0:
            continue
        take = min(p.slack, needed - recovered)
        plan.append((p, take))
        recovered += take

    if recovered < needed:
        return 0
    for p, take in plan:
        p.placed_duration -= take
    return recovered


# ══════════════════════════════════════════════════════════════════════════
#  Phases
# ══════════════════════════════════════════════════════════════════════════

def _assemble_queue(start_time: int, activity_queue: List[TimeBlock], fixed_blocks: List[TimeBlock]) -> List[TimeBlock]:
    items: List[TimeBlock] = []
    for block in activity_queue:
        if block.end_minute > start_time:
            items.append(block.copy())
    for block in fixed_blocks:
        if block.role == BlockRole.wall:
            continue
        if block.end_minute > start_time:
            items.append(block.copy())
    # activities ahead of fixed blocks sharing a start; otherwise template order
    items.sort(key=lambda b: (b.start_minute, 0 if b.role == BlockRole.activity else 1))
    return items


def _initial_placement(
    queue: List[TimeBlock],
    start_time: int,
    wall_time: int,
    dropped: List[TimeBlock],
    division_name: str,
) -> List[PlacedBlock]:
    placed: List[PlacedBlock] = []
    cursor = start_time
    for item in queue:
        room = wall_time - cursor
        p = PlacedBlock(block=item)
        if room <= 0 or room < p.flex.min:
            dropped.append(item)
            logger.debug(
                "[%s] No room for %s at %s (%d min left, needs %d)",
                division_name, item.event_name, minutes_to_clock_label(cursor), max(room, 0), p.flex.min,
            )
            continue
        p.placed_duration = min(p.flex.ideal, room)
        p.placed_start = cursor
        p.placed_end = cursor + p.placed_duration
        placed.append(p)
        cursor = p.placed_end
    return placed


def _absorb_or_distribute(placed: List[PlacedBlock], start_time: int, wall_time: int, division_name: str) -> None:
    recalculate_positions(placed, start_time)
    gap = _trailing_gap(placed, start_time, wall_time)
    if gap <= 0:
        return
    if gap <= MIN_USEFUL_GAP and placed:
        last = placed[-1]
        if last.is_activity and last.placed_duration + gap <= last.flex.max:
            last.placed_duration += gap
            recalculate_positions(placed, start_time)
            logger.debug("[%s] Absorbed %d min gap into %s", division_name, gap, last.block.event_name)
            return
    distribute_extra_time(placed, start_time, wall_time, division_name)


def _squeeze_repair(
    placed: List[PlacedBlock],
    start_time: int,
    wall_time: int,
    dropped: List[TimeBlock],
    division_name: str,
) -> None:
    i = len(placed) - 1
    while i >= 0:
        if i >= len(placed):
            i = len(placed) - 1
            continue
        p = placed[i]
        if p.is_activity and p.placed_duration < p.flex.min:
            needed = p.flex.min - p.placed_duration
            recovered = compress_earlier_activities(placed, i, needed)
            if recovered >= needed:
                p.placed_duration += recovered
                recalculate_positions(placed, start_time)
                logger.debug("[%s] Compressed earlier activities by %d min for %s", division_name, recovered, p.block.event_name)
            else:
                placed.pop(i)
                dropped.append(p.block)
                logger.warning(
                    "[%s] Dropped %s: %d min is below its %d min minimum",
                    division_name, p.block.event_name, p.placed_duration, p.flex.min,
                )
                recalculate_positions(placed, start_time)
                if _trailing_gap(placed, start_time, wall_time) > 0:
                    distribute_extra_time(placed, start_time, wall_time, division_name)
        i -= 1


def _pair_key(block: TimeBlock):
    return (block.main_activity_name, block.pair_origin)


def _enforce_coupling(placed: List[PlacedBlock], dropped: List[TimeBlock], division_name: str) -> bool:
    """Run prep/main and split-sibling checks to a fixed point; True if anything changed."""
    any_change = False
    changed = True
    while changed:
        changed = False
        mains = {_pair_key(p.block) for p in placed if p.block.is_main_block}
        preps = {_pair_key(p.block) for p in placed if p.block.is_prep_block}
        halves = {
            (p.block.split_parent_event, p.block.pair_origin, p.block.split_half, p.block.event_name)
            for p in placed if p.block.split_half is not None
        }

        for p in list(placed):
            b = p.block
            orphan = False
            if b.is_prep_block and _pair_key(b) not in mains:
                orphan = True
            elif b.split_half is not None:
                sibling = (b.split_parent_event, b.pair_origin, 3 - b.split_half, b.split_sibling_name)
                orphan = sibling not in halves
            if orphan:
                placed[:] = [q for q in placed if q is not p]
                dropped.append(b)
                changed = True
                logger.warning("[%s] Dropped %s: its coupled block did not fit", division_name, b.event_name)

        for p in placed:
            b = p.block
            if b.is_main_block and b.has_prep and _pair_key(b) not in preps:
                b.has_prep = False
                changed = True
                logger.info("[%s] %s runs without its prep block", division_name, b.event_name)

        any_change = any_change or changed
    return any_change


def stack_schedule(
    start_time: int,
    wall_time: int,
    activity_queue: List[TimeBlock],
    fixed_blocks: List[TimeBlock],
    division_name: str,
    wall_block: Optional[TimeBlock] = None,
) -> StackResult:
    """Fill [start_time, wall_time] for one division. Never raises."""
    result = StackResult()
    if start_time >= wall_time:
        logger.warning(
            "[%s] No room to stack: start %s is at or after the wall %s",
            division_name, minutes_to_clock_label(start_time), minutes_to_clock_label(wall_time),
        )
        return result

    queue = _assemble_queue(start_time, activity_queue, fixed_blocks)
    placed = _initial_placement(queue, start_time, wall_time, result.dropped, division_name)

    _absorb_or_distribute(placed, start_time, wall_time, division_name)
    _squeeze_repair(placed, start_time, wall_time, result.dropped, division_name)

    if _enforce_coupling(placed, result.dropped, division_name):
        recalculate_positions(placed, start_time)
        if _trailing_gap(placed, start_time, wall_time) > 0:
            distribute_extra_time(placed, start_time, wall_time, division_name)

    if _trailing_gap(placed, start_time, wall_time) > 0:
        distribute_extra_time(placed, start_time, wall_time, division_name)
    recalculate_positions(placed, start_time)

    result.blocks = [p.to_block() for p in placed]
    if wall_block is not None:
        result.blocks.append(
            wall_block.copy(
                start_minute=wall_time,
                end_minute=wall_time + wall_block.duration,
                role=BlockRole.wall,
                flex=None,
                rebuilt=True,
                slot_index=None,
            )
        )

    logger.info(
        "[%s] Stacked %d blocks from %s to %s (%d dropped)",
        division_name, len(placed), minutes_to_clock_label(start_time),
        minutes_to_clock_label(wall_time), result.dropped_count,
    )
    return result
