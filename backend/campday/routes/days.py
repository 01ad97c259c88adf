from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator, model_validator
from sqlmodel import Session

from campday.database import get_session
from campday.routes.templates import validate_block_records
from campday.services.snapshot_remap import entries_from_grid, entries_to_grid
from campday.services.sql_store import SqlCampStore, get_or_create_day
from campday.services.timeline import build_division_timelines

router = APIRouter()


class TimelineUpdate(BaseModel):
    blocks: Optional[List[Dict[str, Any]]] = None
    template_name: Optional[str] = None

    @field_validator("blocks")
    @classmethod
    def validate_blocks(cls, v):
        if v is None:
            return v
        return validate_block_records(v)

    @model_validator(mode="after")
    def validate_source(self):
        if self.blocks is None and not self.template_name:
            raise ValueError("either blocks or template_name is required")
        return self


class AssignmentsUpdate(BaseModel):
    assignments: Dict[str, List[Optional[Dict[str, Any]]]]


def _day_payload(store: SqlCampStore) -> Dict[str, Any]:
    day = get_or_create_day(store.session, store.day_date)
    return {
        "day_date": day.day_date,
        "template_name": day.template_name,
        "is_rainy": day.is_rainy,
        "pre_rainy_template_name": day.pre_rainy_template_name,
        "pending_rebuild_id": day.pending_rebuild_id,
        "timeline": day.timeline or [],
    }


def _reject_if_pending(store: SqlCampStore) -> None:
    pending = store.get_pending_rebuild_id()
    if pending:
        raise HTTPException(
            status_code=409,
            detail=f"REBUILD_IN_PROGRESS: Rebuild {pending} is waiting for the optimizer hand-off",
        )


@router.get("/days/{day}/timeline")
def get_day_timeline(day: date, session: Session = Depends(get_session)):
    return _day_payload(SqlCampStore(session, day.isoformat()))


@router.put("/days/{day}/timeline")
def set_day_timeline(day: date, data: TimelineUpdate, session: Session = Depends(get_session)):
    """Set the live plan for a day, either from raw blocks or by applying a template"""
    store = SqlCampStore(session, day.isoformat())
    _reject_if_pending(store)

    blocks = data.blocks
    if blocks is None:
        blocks = store.load_template(data.template_name)
        if not blocks:
            raise HTTPException(status_code=404, detail=f"Template '{data.template_name}' not found")

    store.save_timeline(blocks, template_name=data.template_name)
    return _day_payload(store)


@router.get("/days/{day}/timeline/divisions")
def get_division_timelines(day: date, session: Session = Depends(get_session)):
    """Per-division slot arrays (split tiles expanded) that assignment rows index into"""
    store = SqlCampStore(session, day.isoformat())
    timelines = build_division_timelines(store.load_current_timeline(), store.list_divisions())
    return {
        "day_date": store.day_date,
        "divisions": {div: [b.to_dict() for b in blocks] for div, blocks in timelines.items()},
    }


@router.get("/days/{day}/assignments")
def get_day_assignments(day: date, session: Session = Depends(get_session)):
    store = SqlCampStore(session, day.isoformat())
    return {"day_date": store.day_date, "assignments": store.load_current_assignments()}


@router.put("/days/{day}/assignments")
def set_day_assignments(day: date, data: AssignmentsUpdate, session: Session = Depends(get_session)):
    store = SqlCampStore(session, day.isoformat())
    _reject_if_pending(store)

    for bunk in data.assignments:
        if store.division_for_bunk(bunk) is None:
            raise HTTPException(status_code=400, detail=f"Bunk '{bunk}' does not belong to any division")

    store.save_assignments(entries_to_grid(entries_from_grid(data.assignments)))
    return {"day_date": store.day_date, "assignments": store.load_current_assignments()}
