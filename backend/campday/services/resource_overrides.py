"""
Rainy-day resource overrides - flip field capacity/availability when rain
starts and put the exact prior values back when it clears.

The first flip snapshots a field's original capacity and time rules; later
flips never overwrite that snapshot, so clearing always restores the
pre-rain configuration.
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ResourceState:
    name: str
    capacity: int = 1
    time_rules: List[Dict[str, Any]] = field(default_factory=list)
    rainy_day_capacity: Optional[int] = None
    rainy_day_available_all_day: bool = False
    original_saved: bool = False
    original_capacity: Optional[int] = None
    original_time_rules: Optional[List[Dict[str, Any]]] = None


@dataclass
class ResourceOverrides:
    capacity_overrides: Dict[str, int] = field(default_factory=dict)
    availability_overrides: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.capacity_overrides and not self.availability_overrides

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ResourceOverrides":
        data = data or {}
        return cls(
            capacity_overrides={str(k): int(v) for k, v in (data.get("capacity_overrides") or {}).items()},
            availability_overrides=[str(n) for n in data.get("availability_overrides") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacity_overrides": dict(self.capacity_overrides),
            "availability_overrides": list(self.availability_overrides),
        }


def build_rainy_day_resource_overrides(resources: Iterable[ResourceState]) -> ResourceOverrides:
    """Default overrides from each field's own rainy-day settings."""
    overrides = ResourceOverrides()
    for res in resources:
        if res.rainy_day_capacity is not None and res.rainy_day_capacity > 0:
            overrides.capacity_overrides[res.name] = res.rainy_day_capacity
        if res.rainy_day_available_all_day and res.time_rules:
            overrides.availability_overrides.append(res.name)
    return overrides


def _snapshot_original(res: ResourceState) -> None:
    if res.original_saved:
        return
    res.original_saved = True
    res.original_capacity = res.capacity
    res.original_time_rules = copy.deepcopy(res.time_rules)


def apply_resource_overrides(registry, overrides: Optional[ResourceOverrides], rain_starting: bool) -> bool:
    """
    Apply (rain_starting=True) or undo (False) overrides on a ResourceRegistry.

    Undo ignores `overrides` and restores every field that has a snapshot.
    Returns True if any field was modified.
    """
    changed = False

    if rain_starting:
        if overrides is None or overrides.is_empty:
            return False
        for res in registry.list_resources():
            new_capacity = overrides.capacity_overrides.get(res.name)
            clear_rules = res.name in overrides.availability_overrides
            if new_capacity is None and not clear_rules:
                continue

            _snapshot_original(res)
            touched = False
            if new_capacity is not None and res.capacity != new_capacity:
                res.capacity = new_capacity
                touched = True
            if clear_rules and res.time_rules:
                res.time_rules = []
                touched = True
            registry.save_resource(res)
            if touched:
                changed = True
                logger.info("Rainy-day override on %s: capacity=%s, time_rules=%d", res.name, res.capacity, len(res.time_rules))
        return changed

    for res in registry.list_resources():
        if not res.original_saved:
            continue
        if res.capacity != res.original_capacity or res.time_rules != (res.original_time_rules or []):
            changed = True
        res.capacity = res.original_capacity if res.original_capacity is not None else res.capacity
        res.time_rules = copy.deepcopy(res.original_time_rules or [])
        res.original_saved = False
        res.original_capacity = None
        res.original_time_rules = None
        registry.save_resource(res)
        logger.info("Restored %s to capacity=%s, time_rules=%d", res.name, res.capacity, len(res.time_rules))
    return changed
