"""
Collaborator interfaces the rebuild core depends on.

The core never talks to a database directly; the scheduler is handed objects
that satisfy these protocols (SqlCampStore in production, plain in-memory
fakes in tests).
"""
from typing import Any, Dict, List, Optional, Protocol

BlockRecord = Dict[str, Any]
AssignmentGrid = Dict[str, List[Optional[Dict[str, Any]]]]


class TemplateStore(Protocol):
    def load_template(self, name: str) -> Optional[List[BlockRecord]]:
        ...


class DivisionRegistry(Protocol):
    def list_divisions(self) -> List[str]:
        ...

    def division_for_bunk(self, bunk: str) -> Optional[str]:
        ...


class SpecialActivityRegistry(Protocol):
    def get_setup_duration(self, activity_name: str) -> int:
        ...


class LiveDayStore(Protocol):
    def load_current_timeline(self) -> List[BlockRecord]:
        ...

    def load_current_assignments(self) -> AssignmentGrid:
        ...

    def save_timeline(self, records: List[BlockRecord], template_name: Optional[str] = None) -> None:
        ...

    def save_assignments(self, assignments: AssignmentGrid) -> None:
        ...

    def get_pending_rebuild_id(self) -> Optional[str]:
        ...

    def set_pending_rebuild_id(self, rebuild_id: Optional[str]) -> None:
        ...

    def get_current_template_name(self) -> Optional[str]:
        ...

    def get_pre_rainy_template_name(self) -> Optional[str]:
        ...

    def set_rainy_state(self, is_rainy: bool, pre_rainy_template_name: Optional[str] = None) -> None:
        ...

    def get_rainy_template_name(self) -> Optional[str]:
        ...


class ResourceRegistry(Protocol):
    def list_resources(self) -> List[Any]:
        """ResourceState objects (see resource_overrides)."""
        ...

    def save_resource(self, state: Any) -> None:
        ...


class RebuildAudit(Protocol):
    def record_rebuild(self, payload: Dict[str, Any]) -> None:
        ...


class Optimizer(Protocol):
    def run(self, timeline: List[BlockRecord], assignments: AssignmentGrid) -> AssignmentGrid:
        """Fill unpinned slots. Pinned entries must come back unchanged."""
        ...


class GenerationListener(Protocol):
    def __call__(self, rebuild_id: str, assignments: AssignmentGrid) -> None:
        ...


class RebuildStores:
    """The collaborators one rebuild needs, usually all backed by one store object."""

    def __init__(
        self,
        templates: TemplateStore,
        divisions: DivisionRegistry,
        activities: SpecialActivityRegistry,
        day: LiveDayStore,
        resources: Optional[ResourceRegistry] = None,
        audit: Optional[RebuildAudit] = None,
    ):
        self.templates = templates
        self.divisions = divisions
        self.activities = activities
        self.day = day
        self.resources = resources
        self.audit = audit

    @classmethod
    def single(cls, store) -> "RebuildStores":
        return cls(
            templates=store,
            divisions=store,
            activities=store,
            day=store,
            resources=store,
            audit=store,
        )
