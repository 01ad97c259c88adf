"""
SQLModel-backed implementation of every rebuild collaborator for one day.

JSON columns are always reassigned (never mutated in place) so SQLAlchemy
sees the change.
"""
import copy
import json
import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from campday.models import CampField, CampSettings, DaySchedule, DayTemplate, Division, RebuildRun, SpecialActivity
from campday.services.resource_overrides import ResourceState

logger = logging.getLogger(__name__)


def get_camp_settings(session: Session) -> CampSettings:
    """The single settings row, created on first use."""
    settings = session.exec(select(CampSettings).order_by(CampSettings.id)).first()
    if settings is None:
        settings = CampSettings()
        session.add(settings)
        session.commit()
        session.refresh(settings)
    return settings


def get_or_create_day(session: Session, day_date: str) -> DaySchedule:
    day = session.exec(select(DaySchedule).where(DaySchedule.day_date == day_date)).first()
    if day is None:
        day = DaySchedule(day_date=day_date)
        session.add(day)
        session.commit()
        session.refresh(day)
    return day


class SqlCampStore:
    def __init__(self, session: Session, day_date: str):
        self.session = session
        self.day_date = day_date

    def _day(self) -> DaySchedule:
        return get_or_create_day(self.session, self.day_date)

    def _save(self, obj) -> None:
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)

    # TemplateStore

    def load_template(self, name: str) -> Optional[List[Dict[str, Any]]]:
        template = self.session.exec(select(DayTemplate).where(DayTemplate.name == name)).first()
        if template is None:
            return None
        return copy.deepcopy(template.blocks or [])

    # DivisionRegistry

    def list_divisions(self) -> List[str]:
        rows = self.session.exec(select(Division).order_by(Division.sort_order, Division.name)).all()
        return [d.name for d in rows]

    def division_for_bunk(self, bunk: str) -> Optional[str]:
        for division in self.session.exec(select(Division)).all():
            if str(bunk) in [str(b) for b in division.bunks or []]:
                return division.name
        return None

    # SpecialActivityRegistry

    def get_setup_duration(self, activity_name: str) -> int:
        activity = self.session.exec(select(SpecialActivity).where(SpecialActivity.name == activity_name)).first()
        if activity is None:
            return 0
        return max(0, activity.setup_minutes or 0)

    # LiveDayStore

    def load_current_timeline(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._day().timeline or [])

    def load_current_assignments(self) -> Dict[str, List[Optional[Dict[str, Any]]]]:
        return copy.deepcopy(self._day().assignments or {})

    def save_timeline(self, records: List[Dict[str, Any]], template_name: Optional[str] = None) -> None:
        day = self._day()
        day.timeline = copy.deepcopy(list(records))
        if template_name is not None:
            day.template_name = template_name
        self._save(day)

    def save_assignments(self, assignments: Dict[str, List[Optional[Dict[str, Any]]]]) -> None:
        day = self._day()
        day.assignments = copy.deepcopy(dict(assignments))
        self._save(day)

    def get_pending_rebuild_id(self) -> Optional[str]:
        return self._day().pending_rebuild_id

    def set_pending_rebuild_id(self, rebuild_id: Optional[str]) -> None:
        day = self._day()
        day.pending_rebuild_id = rebuild_id
        self._save(day)

    def get_current_template_name(self) -> Optional[str]:
        return self._day().template_name

    def get_pre_rainy_template_name(self) -> Optional[str]:
        return self._day().pre_rainy_template_name

    def set_rainy_state(self, is_rainy: bool, pre_rainy_template_name: Optional[str] = None) -> None:
        day = self._day()
        day.is_rainy = is_rainy
        day.pre_rainy_template_name = pre_rainy_template_name
        self._save(day)

    def get_rainy_template_name(self) -> Optional[str]:
        return get_camp_settings(self.session).rainy_day_template_name

    # ResourceRegistry

    def list_resources(self) -> List[ResourceState]:
        fields = self.session.exec(select(CampField).order_by(CampField.name)).all()
        return [
            ResourceState(
                name=f.name,
                capacity=f.capacity,
                time_rules=copy.deepcopy(f.time_rules or []),
                rainy_day_capacity=f.rainy_day_capacity,
                rainy_day_available_all_day=f.rainy_day_available_all_day,
                original_saved=f.original_saved,
                original_capacity=f.original_capacity,
                original_time_rules=copy.deepcopy(f.original_time_rules),
            )
            for f in fields
        ]

    def save_resource(self, state: ResourceState) -> None:
        field = self.session.exec(select(CampField).where(CampField.name == state.name)).first()
        if field is None:
            logger.warning("Field %s disappeared before its override could be saved", state.name)
            return
        field.capacity = state.capacity
        field.time_rules = copy.deepcopy(state.time_rules)
        field.original_saved = state.original_saved
        field.original_capacity = state.original_capacity
        field.original_time_rules = copy.deepcopy(state.original_time_rules)
        self._save(field)

    # RebuildAudit

    def record_rebuild(self, payload: Dict[str, Any]) -> None:
        summary = payload.get("summary") or {}
        run = RebuildRun(
            day_date=self.day_date,
            rebuild_id=payload.get("rebuild_id"),
            template_name=summary.get("template_name"),
            direction=summary.get("direction") or "manual",
            transition_minute=summary.get("transition_minute"),
            ok=bool(payload.get("success")),
            error_code=payload.get("error_code"),
            dropped=summary.get("dropped") or 0,
            summary_json=json.dumps(payload, default=str),
        )
        self._save(run)
