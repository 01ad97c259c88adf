"""
DayScheduler - single owner of one camp day's live timeline and assignments.

A rebuild is two-phase:

    snapshot = scheduler.prepare_rebuild(transition)       # guard + capture
    result = scheduler.rebuild(snapshot, "Rainy Day", ...)  # stack + remap + save
    handoff = scheduler.apply_optimizer(snapshot.rebuild_id, optimizer)

Between prepare_rebuild and apply_optimizer (or abandon) the day carries a
pending rebuild id and any second prepare_rebuild is rejected. Generation
listeners fire immediately before and after the optimizer runs; the pin
preservation hooks attach there.
"""
import logging
from typing import Any, Dict, List, Optional

from campday.services.errors import (
    NoRainyTemplate,
    NoRegularTemplate,
    RebuildError,
    RebuildInProgress,
    UnknownRebuild,
)
from campday.services.interfaces import GenerationListener, Optimizer, RebuildStores
from campday.services.rebuild_orchestrator import (
    ROUND_TO_MIN,
    STATUS_REBUILT,
    RebuildDirection,
    RebuildResult,
    rebuild_from_transition,
)
from campday.services.resource_overrides import ResourceOverrides, build_rainy_day_resource_overrides
from campday.services.snapshot_remap import (
    RebuildSnapshot,
    capture_snapshot,
    entries_from_grid,
    entries_to_grid,
    remap_preserved_assignments,
)
from campday.services.timeline import build_division_timelines
from campday.utils.clock import round_to_grid

logger = logging.getLogger(__name__)


class OptimizerHandoff:
    """Outcome of handing a rebuilt day to the optimizer"""

    def __init__(self, rebuild_id: str, assignments: Dict[str, Any]):
        self.rebuild_id = rebuild_id
        self.assignments = assignments

    @property
    def pinned_count(self) -> int:
        return sum(1 for row in self.assignments.values() for e in row if e and e.get("pinned"))

    @property
    def filled_count(self) -> int:
        return sum(1 for row in self.assignments.values() for e in row if e)

    def to_dict(self):
        return {
            "rebuild_id": self.rebuild_id,
            "pinned_count": self.pinned_count,
            "filled_count": self.filled_count,
            "assignments": self.assignments,
        }


class DayScheduler:
    def __init__(
        self,
        stores: RebuildStores,
        on_generation_starting: Optional[List[GenerationListener]] = None,
        on_generation_complete: Optional[List[GenerationListener]] = None,
    ):
        self.stores = stores
        self.on_generation_starting: List[GenerationListener] = list(on_generation_starting or [])
        self.on_generation_complete: List[GenerationListener] = list(on_generation_complete or [])

    # ------------------------------------------------------------------
    # Two-phase API
    # ------------------------------------------------------------------

    def prepare_rebuild(self, transition_minute: int) -> RebuildSnapshot:
        """Capture the live day and mark a rebuild as pending."""
        pending = self.stores.day.get_pending_rebuild_id()
        if pending:
            raise RebuildInProgress(f"Rebuild {pending} is still waiting for the optimizer hand-off")

        divisions = self.stores.divisions.list_divisions()
        timeline = build_division_timelines(self.stores.day.load_current_timeline(), divisions)
        snapshot = capture_snapshot(
            self.stores.day.load_current_assignments(),
            timeline,
            round_to_grid(transition_minute, ROUND_TO_MIN),
        )
        self.stores.day.set_pending_rebuild_id(snapshot.rebuild_id)
        logger.info("Prepared rebuild %s at minute %d", snapshot.rebuild_id, snapshot.transition_minute)
        return snapshot

    def rebuild(
        self,
        snapshot: RebuildSnapshot,
        template_name: str,
        direction: RebuildDirection = RebuildDirection.manual,
        resource_overrides: Optional[ResourceOverrides] = None,
    ) -> RebuildResult:
        """Rebuild from the snapshot's transition and re-seat completed work."""
        if self.stores.day.get_pending_rebuild_id() != snapshot.rebuild_id:
            return RebuildResult().fail(UnknownRebuild(f"Rebuild {snapshot.rebuild_id} is not pending"))

        result = rebuild_from_transition(
            self.stores,
            snapshot.transition_minute,
            template_name,
            direction=direction,
            resource_overrides=resource_overrides,
        )
        result.rebuild_id = snapshot.rebuild_id
        if not result.success:
            self.stores.day.set_pending_rebuild_id(None)
            self._record(result)
            return result

        bunk_divisions = {}
        for bunk in snapshot.old_assignments:
            division = self.stores.divisions.division_for_bunk(bunk)
            if division is not None:
                bunk_divisions[bunk] = str(division)

        remap = remap_preserved_assignments(snapshot, result.timeline_by_division, bunk_divisions)
        assignments = dict(remap.assignments)
        # untouched divisions (and bunks with no division) keep their whole day
        for bunk, old_row in snapshot.old_assignments.items():
            division = bunk_divisions.get(bunk)
            div_result = result.division_results.get(division) if division is not None else None
            if div_result is None or div_result.status != STATUS_REBUILT:
                assignments[bunk] = old_row

        self.stores.day.save_assignments(entries_to_grid(assignments))
        result.warnings.extend(remap.warnings)
        result.remap = remap.to_dict()
        self._record(result)
        return result

    def apply_optimizer(self, rebuild_id: str, optimizer: Optimizer) -> OptimizerHandoff:
        """Run the optimizer over the rebuilt day and release the pending guard."""
        self._require_pending(rebuild_id)

        timeline = self.stores.day.load_current_timeline()
        assignments = entries_to_grid(entries_from_grid(self.stores.day.load_current_assignments()))

        for listener in self.on_generation_starting:
            listener(rebuild_id, assignments)

        filled = optimizer.run(timeline, assignments)
        filled = entries_to_grid(entries_from_grid(filled))
        self.stores.day.save_assignments(filled)

        for listener in self.on_generation_complete:
            listener(rebuild_id, filled)

        self.stores.day.set_pending_rebuild_id(None)
        logger.info("Optimizer hand-off for rebuild %s complete", rebuild_id)
        return OptimizerHandoff(rebuild_id, filled)

    def abandon(self, rebuild_id: str) -> None:
        """Drop a pending hand-off without running the optimizer."""
        self._require_pending(rebuild_id)
        self.stores.day.set_pending_rebuild_id(None)
        logger.info("Rebuild %s abandoned before optimizer hand-off", rebuild_id)

    # ------------------------------------------------------------------
    # Convenience wrappers (never raise RebuildError)
    # ------------------------------------------------------------------

    def preview(self, transition_minute: int, template_name: str) -> RebuildResult:
        return rebuild_from_transition(self.stores, transition_minute, template_name, persist=False)

    def run_rebuild(
        self,
        transition_minute: int,
        template_name: str,
        direction: RebuildDirection = RebuildDirection.manual,
        resource_overrides: Optional[ResourceOverrides] = None,
    ) -> RebuildResult:
        try:
            snapshot = self.prepare_rebuild(transition_minute)
        except RebuildError as exc:
            logger.warning("Rebuild rejected: %s", exc.message)
            return RebuildResult().fail(exc)
        return self.rebuild(snapshot, template_name, direction, resource_overrides)

    def handle_rain_start(
        self,
        transition_minute: int,
        resource_overrides: Optional[ResourceOverrides] = None,
    ) -> RebuildResult:
        day = self.stores.day
        rainy_template = day.get_rainy_template_name()
        if not rainy_template:
            return RebuildResult().fail(NoRainyTemplate("No rainy-day template is configured"))

        previous_template = day.get_current_template_name()
        if resource_overrides is None and self.stores.resources is not None:
            resource_overrides = build_rainy_day_resource_overrides(self.stores.resources.list_resources())

        result = self.run_rebuild(transition_minute, rainy_template, RebuildDirection.rain_starting, resource_overrides)
        if result.success:
            day.set_rainy_state(True, previous_template)
        return result

    def handle_rain_clear(self, transition_minute: int, regular_template_name: Optional[str] = None) -> RebuildResult:
        day = self.stores.day
        template_name = regular_template_name or day.get_pre_rainy_template_name()
        if not template_name:
            return RebuildResult().fail(
                NoRegularTemplate("No regular template given and none was recorded when rain started")
            )

        result = self.run_rebuild(transition_minute, template_name, RebuildDirection.rain_clearing)
        if result.success:
            day.set_rainy_state(False, None)
        return result

    # ------------------------------------------------------------------

    def _require_pending(self, rebuild_id: str) -> None:
        pending = self.stores.day.get_pending_rebuild_id()
        if not pending or pending != rebuild_id:
            raise UnknownRebuild(f"Rebuild {rebuild_id} is not pending for this day")

    def _record(self, result: RebuildResult) -> None:
        if self.stores.audit is None:
            return
        payload = result.to_dict()
        payload.pop("timeline", None)
        self.stores.audit.record_rebuild(payload)
