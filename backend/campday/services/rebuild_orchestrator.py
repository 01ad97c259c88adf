"""
Rebuild Orchestrator - rebuild the rest of a camp day from a transition time.

For every division:
1. keep what already happened (truncating the block that straddles the cutover)
2. parse the target template (rainy-day, regular, ...) for the division
3. find the wall, falling back to the live timeline's dismissal
4. snap the restart to a nearby template boundary, filling the sliver
5. stack the remaining activities up to the wall
6. stitch preserved + filler + stacked blocks into a new slot-indexed timeline

Fatal conditions come back as a failed RebuildResult; nothing is raised to
the caller. Division-level problems are warnings and leave that division's
live timeline as it was.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from campday.services.errors import (
    ACTIVITY_DROPPED,
    NO_WALL_FOR_DIVISION,
    TRANSITION_PAST_WALL,
    NoDivisionsConfigured,
    RebuildError,
    RebuildWarning,
    TemplateNotFound,
)
from campday.services.interfaces import RebuildStores
from campday.services.prep_expander import expand_prep_blocks
from campday.services.resource_overrides import ResourceOverrides, apply_resource_overrides
from campday.services.stacking_engine import stack_schedule
from campday.services.template_parser import classify_blocks, find_wall, parse_template_for_division
from campday.services.timeline import (
    BlockRole,
    TimeBlock,
    assign_slot_indices,
    build_division_timelines,
    timeline_to_records,
)
from campday.utils.clock import minutes_to_clock_label, round_to_grid

logger = logging.getLogger(__name__)

ROUND_TO_MIN = 5
SNAP_THRESHOLD_MIN = 10
TRANSITION_EVENT = "Transition"

STATUS_REBUILT = "rebuilt"
STATUS_NO_WALL = "skipped_no_wall"
STATUS_PAST_WALL = "skipped_past_wall"
STATUS_UNCHANGED = "unchanged"


class RebuildDirection(str, Enum):
    rain_starting = "rain_starting"
    rain_clearing = "rain_clearing"
    manual = "manual"


# ============================================================================
# Result Models
# ============================================================================


class DivisionRebuildResult:
    """Per-division outcome of a rebuild"""

    def __init__(self, division: str):
        self.division = division
        self.status = STATUS_REBUILT
        self.preserved_blocks: List[TimeBlock] = []
        self.transition_block: Optional[TimeBlock] = None
        self.stacked_blocks: List[TimeBlock] = []
        self.wall_block: Optional[TimeBlock] = None
        self.dropped_count = 0
        self.dropped_names: List[str] = []
        self.effective_start: Optional[int] = None
        self.wall_time: Optional[int] = None
        self.blocks: List[TimeBlock] = []

    def to_dict(self):
        return {
            "division": self.division,
            "status": self.status,
            "preserved": len(self.preserved_blocks),
            "stacked": len(self.stacked_blocks),
            "dropped": self.dropped_count,
            "dropped_activities": list(self.dropped_names),
            "effective_start": self.effective_start,
            "effective_start_label": (
                minutes_to_clock_label(self.effective_start) if self.effective_start is not None else None
            ),
            "wall_time": self.wall_time,
            "wall_time_label": minutes_to_clock_label(self.wall_time) if self.wall_time is not None else None,
            "transition_filler": self.transition_block is not None,
        }


class RebuildSummary:
    """Day-level summary of a rebuild"""

    def __init__(self):
        self.template_name: Optional[str] = None
        self.direction: Optional[str] = None
        self.transition_minute: Optional[int] = None
        self.effective_transition: Optional[int] = None
        self.divisions_rebuilt = 0
        self.divisions_skipped = 0
        self.preserved_blocks = 0
        self.stacked_blocks = 0
        self.dropped = 0
        self.resource_overrides_applied = False
        self.persisted = False
        self.divisions: Dict[str, Dict[str, Any]] = {}

    def to_dict(self):
        return {
            "template_name": self.template_name,
            "direction": self.direction,
            "transition_minute": self.transition_minute,
            "effective_transition": self.effective_transition,
            "divisions_rebuilt": self.divisions_rebuilt,
            "divisions_skipped": self.divisions_skipped,
            "preserved_blocks": self.preserved_blocks,
            "stacked_blocks": self.stacked_blocks,
            "dropped": self.dropped,
            "resource_overrides_applied": self.resource_overrides_applied,
            "persisted": self.persisted,
            "divisions": self.divisions,
        }


class RebuildResult:
    """Complete result of a rebuild"""

    def __init__(self):
        self.success = True
        self.timeline: List[Dict[str, Any]] = []
        self.timeline_by_division: Dict[str, List[TimeBlock]] = {}
        self.summary = RebuildSummary()
        self.warnings: List[RebuildWarning] = []
        self.division_results: Dict[str, DivisionRebuildResult] = {}
        self.error: Optional[str] = None
        self.error_code: Optional[str] = None
        self.rebuild_id: Optional[str] = None
        self.remap: Optional[Dict[str, Any]] = None

    def fail(self, exc: RebuildError) -> "RebuildResult":
        self.success = False
        self.error = exc.message
        self.error_code = exc.code
        return self

    def to_dict(self):
        result = {
            "success": self.success,
            "rebuild_id": self.rebuild_id,
            "summary": self.summary.to_dict(),
            "warnings": [w.to_dict() for w in self.warnings],
            "timeline": self.timeline,
        }
        if self.remap is not None:
            result["remap"] = self.remap
        if not self.success:
            result["error"] = self.error
            result["error_code"] = self.error_code
        return result


# ============================================================================
# Per-division steps
# ============================================================================


def preserve_elapsed_blocks(live_blocks: List[TimeBlock], effective_transition: int) -> List[TimeBlock]:
    """Blocks already over at the cutover, plus the straddling one cut short."""
    preserved: List[TimeBlock] = []
    for block in live_blocks:
        if block.end_minute <= effective_transition:
            preserved.append(block.copy())
        elif block.start_minute < effective_transition:
            preserved.append(
                block.copy(
                    end_minute=effective_transition,
                    truncated_at_cutover=True,
                    original_end_minute=block.end_minute,
                )
            )
    return preserved


def calculate_effective_start(effective_transition: int, block_starts: List[int]) -> int:
    """Snap forward to the next template block start within SNAP_THRESHOLD_MIN, if any."""
    if effective_transition in block_starts:
        return effective_transition
    for point in sorted(block_starts):
        if point <= effective_transition:
            continue
        if point - effective_transition <= SNAP_THRESHOLD_MIN:
            return point
        break
    return effective_transition


def make_transition_block(division: str, start: int, end: int) -> TimeBlock:
    return TimeBlock(
        division=division,
        start_minute=start,
        end_minute=end,
        event_name=TRANSITION_EVENT,
        role=BlockRole.fixed,
        block_type="pinned",
        rebuilt=True,
    )


def rebuild_division(
    division: str,
    template_records: List[Dict[str, Any]],
    live_blocks: List[TimeBlock],
    effective_transition: int,
    get_setup_duration,
    warnings: List[RebuildWarning],
) -> DivisionRebuildResult:
    div_result = DivisionRebuildResult(division)
    div_result.preserved_blocks = preserve_elapsed_blocks(live_blocks, effective_transition)

    parsed = parse_template_for_division(template_records, division)
    wall_time, wall_block = parsed.wall_time, parsed.wall_block
    if wall_time is None:
        live_wall = find_wall(live_blocks)
        if live_wall is not None:
            wall_time, wall_block = live_wall.start_minute, live_wall
            logger.info("[%s] Template has no dismissal; using live wall at %s", division, live_wall.start_time)

    if wall_time is None:
        message = f"No dismissal block for division {division}; timeline left unchanged"
        warnings.append(RebuildWarning(NO_WALL_FOR_DIVISION, message, division))
        logger.warning("[%s] %s", division, message)
        div_result.status = STATUS_NO_WALL
        div_result.blocks = [b.copy() for b in live_blocks]
        return div_result

    div_result.wall_time = wall_time
    effective_start = calculate_effective_start(effective_transition, parsed.block_starts)
    div_result.effective_start = effective_start

    if effective_start >= wall_time:
        message = (
            f"Transition {minutes_to_clock_label(effective_start)} is at or after dismissal "
            f"{minutes_to_clock_label(wall_time)} for division {division}; timeline left unchanged"
        )
        warnings.append(RebuildWarning(TRANSITION_PAST_WALL, message, division))
        logger.warning("[%s] %s", division, message)
        div_result.status = STATUS_PAST_WALL
        div_result.blocks = [b.copy() for b in live_blocks]
        return div_result

    if effective_start > effective_transition:
        div_result.transition_block = make_transition_block(division, effective_transition, effective_start)

    queue = expand_prep_blocks(parsed.activity_queue, get_setup_duration)
    stacked = stack_schedule(effective_start, wall_time, queue, parsed.fixed_blocks, division, wall_block)

    div_result.stacked_blocks = [b for b in stacked.blocks if b.role != BlockRole.wall]
    walls = [b for b in stacked.blocks if b.role == BlockRole.wall]
    div_result.wall_block = walls[0] if walls else None
    div_result.dropped_count = stacked.dropped_count
    div_result.dropped_names = stacked.dropped_names
    for name in stacked.dropped_names:
        warnings.append(RebuildWarning(ACTIVITY_DROPPED, f"{name} dropped to fit before dismissal", division))

    blocks = list(div_result.preserved_blocks)
    if div_result.transition_block is not None:
        blocks.append(div_result.transition_block)
    blocks.extend(stacked.blocks)
    div_result.blocks = assign_slot_indices(blocks)
    return div_result


# ============================================================================
# Main Orchestrator Function
# ============================================================================


def rebuild_from_transition(
    stores: RebuildStores,
    transition_minute: int,
    target_template_name: str,
    direction: RebuildDirection = RebuildDirection.manual,
    resource_overrides: Optional[ResourceOverrides] = None,
    persist: bool = True,
) -> RebuildResult:
    """
    Rebuild the remainder of the day from `transition_minute` using the
    named template.

    With persist=False nothing is written (preview): no timeline save and no
    resource override flip.
    """
    result = RebuildResult()
    summary = result.summary
    summary.template_name = target_template_name
    summary.direction = RebuildDirection(direction).value
    summary.transition_minute = transition_minute

    try:
        template_records = stores.templates.load_template(target_template_name)
        if not template_records:
            raise TemplateNotFound(f"Template '{target_template_name}' not found or empty")

        divisions = [str(d) for d in stores.divisions.list_divisions()]
        if not divisions:
            raise NoDivisionsConfigured("No divisions are configured for this camp")
    except RebuildError as exc:
        logger.warning("Rebuild from %s aborted: %s", minutes_to_clock_label(transition_minute), exc.message)
        return result.fail(exc)

    live = build_division_timelines(stores.day.load_current_timeline(), divisions)
    effective_transition = round_to_grid(transition_minute, ROUND_TO_MIN)
    summary.effective_transition = effective_transition
    logger.info(
        "Rebuilding from %s (rounded from %s) with template %r",
        minutes_to_clock_label(effective_transition), minutes_to_clock_label(transition_minute), target_template_name,
    )

    for division, live_blocks in live.items():
        live_blocks = classify_blocks([b.copy() for b in live_blocks])
        if division not in divisions:
            div_result = DivisionRebuildResult(division)
            div_result.status = STATUS_UNCHANGED
            div_result.blocks = live_blocks
        else:
            div_result = rebuild_division(
                division,
                template_records,
                live_blocks,
                effective_transition,
                stores.activities.get_setup_duration,
                result.warnings,
            )

        result.division_results[division] = div_result
        result.timeline_by_division[division] = div_result.blocks
        summary.divisions[division] = div_result.to_dict()
        if div_result.status == STATUS_REBUILT:
            summary.divisions_rebuilt += 1
            summary.preserved_blocks += len(div_result.preserved_blocks)
            summary.stacked_blocks += len(div_result.stacked_blocks)
            summary.dropped += div_result.dropped_count
        else:
            summary.divisions_skipped += 1

    result.timeline = timeline_to_records(result.timeline_by_division)

    if not persist:
        logger.info("Rebuild preview: %d divisions rebuilt, %d dropped", summary.divisions_rebuilt, summary.dropped)
        return result

    if stores.resources is not None:
        if direction == RebuildDirection.rain_starting:
            summary.resource_overrides_applied = apply_resource_overrides(stores.resources, resource_overrides, True)
        elif direction == RebuildDirection.rain_clearing:
            summary.resource_overrides_applied = apply_resource_overrides(stores.resources, None, False)

    stores.day.save_timeline(result.timeline, template_name=target_template_name)
    summary.persisted = True
    logger.info(
        "Rebuild saved: %d divisions rebuilt, %d skipped, %d activities dropped",
        summary.divisions_rebuilt, summary.divisions_skipped, summary.dropped,
    )
    return result
