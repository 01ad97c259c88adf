"""
Rebuild endpoints: preview, rebuild, rain start/clear, optimizer hand-off.

Fatal rebuild results become HTTP errors with "CODE: message" details; a
successful rebuild returns the summary, warnings and the new timeline.
"""
import json
from datetime import date
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from campday.database import get_session
from campday.models.rebuild_run import RebuildRun
from campday.services import errors
from campday.services.day_scheduler import DayScheduler
from campday.services.interfaces import Optimizer, RebuildStores
from campday.services.rebuild_orchestrator import RebuildDirection, RebuildResult
from campday.services.resource_overrides import ResourceOverrides
from campday.services.sql_store import SqlCampStore
from campday.utils.clock import parse_clock_string

router = APIRouter()

ERROR_STATUS = {
    errors.TEMPLATE_NOT_FOUND: 404,
    errors.UNKNOWN_REBUILD: 404,
    errors.NO_DIVISIONS_CONFIGURED: 400,
    errors.NO_RAINY_TEMPLATE: 400,
    errors.NO_REGULAR_TEMPLATE: 400,
    errors.REBUILD_IN_PROGRESS: 409,
}


def get_optimizer() -> Optional[Optimizer]:
    """No optimizer is wired in by default; deployments override this dependency."""
    return None


def _transition_minute(v):
    minute = parse_clock_string(v)
    if minute is None or minute < 0 or minute >= 24 * 60:
        raise ValueError("transition_time must be a clock time like '1:30pm' or minutes since midnight")
    return minute


class RebuildRequest(BaseModel):
    transition_time: Union[int, str]
    template_name: str
    direction: RebuildDirection = RebuildDirection.manual
    resource_overrides: Optional[Dict[str, Any]] = None

    @field_validator("transition_time")
    @classmethod
    def validate_transition_time(cls, v):
        return _transition_minute(v)

    @field_validator("template_name")
    @classmethod
    def validate_template_name(cls, v):
        if not v or not v.strip():
            raise ValueError("template_name cannot be empty")
        return v.strip()


class RainStartRequest(BaseModel):
    transition_time: Union[int, str]
    resource_overrides: Optional[Dict[str, Any]] = None

    @field_validator("transition_time")
    @classmethod
    def validate_transition_time(cls, v):
        return _transition_minute(v)


class RainClearRequest(BaseModel):
    transition_time: Union[int, str]
    regular_template_name: Optional[str] = None

    @field_validator("transition_time")
    @classmethod
    def validate_transition_time(cls, v):
        return _transition_minute(v)


def _scheduler(session: Session, day: date) -> DayScheduler:
    return DayScheduler(RebuildStores.single(SqlCampStore(session, day.isoformat())))


def _overrides(data: Optional[Dict[str, Any]]) -> Optional[ResourceOverrides]:
    if data is None:
        return None
    return ResourceOverrides.from_dict(data)


def _respond(result: RebuildResult) -> Dict[str, Any]:
    if not result.success:
        raise HTTPException(
            status_code=ERROR_STATUS.get(result.error_code, 400),
            detail=f"{result.error_code}: {result.error}",
        )
    return result.to_dict()


@router.post("/days/{day}/rebuild/preview")
def preview_rebuild(day: date, data: RebuildRequest, session: Session = Depends(get_session)):
    """Run the rebuild without saving anything"""
    return _respond(_scheduler(session, day).preview(data.transition_time, data.template_name))


@router.post("/days/{day}/rebuild")
def rebuild_day(day: date, data: RebuildRequest, session: Session = Depends(get_session)):
    result = _scheduler(session, day).run_rebuild(
        data.transition_time,
        data.template_name,
        direction=data.direction,
        resource_overrides=_overrides(data.resource_overrides),
    )
    return _respond(result)


@router.post("/days/{day}/rain/start")
def start_rain(day: date, data: RainStartRequest, session: Session = Depends(get_session)):
    """Switch the rest of the day to the rainy-day template"""
    result = _scheduler(session, day).handle_rain_start(
        data.transition_time, resource_overrides=_overrides(data.resource_overrides)
    )
    return _respond(result)


@router.post("/days/{day}/rain/clear")
def clear_rain(day: date, data: RainClearRequest, session: Session = Depends(get_session)):
    """Switch the rest of the day back to the regular template"""
    result = _scheduler(session, day).handle_rain_clear(
        data.transition_time, regular_template_name=data.regular_template_name
    )
    return _respond(result)


@router.post("/days/{day}/rebuild/{rebuild_id}/optimize")
def optimize_rebuild(
    day: date,
    rebuild_id: str,
    session: Session = Depends(get_session),
    optimizer: Optional[Optimizer] = Depends(get_optimizer),
):
    if optimizer is None:
        raise HTTPException(status_code=503, detail="No optimizer is configured")
    try:
        handoff = _scheduler(session, day).apply_optimizer(rebuild_id, optimizer)
    except errors.UnknownRebuild as exc:
        raise HTTPException(status_code=404, detail=f"{exc.code}: {exc.message}")
    return handoff.to_dict()


@router.delete("/days/{day}/rebuild/{rebuild_id}")
def abandon_rebuild(day: date, rebuild_id: str, session: Session = Depends(get_session)):
    try:
        _scheduler(session, day).abandon(rebuild_id)
    except errors.UnknownRebuild as exc:
        raise HTTPException(status_code=404, detail=f"{exc.code}: {exc.message}")
    return {"abandoned": rebuild_id}


@router.get("/days/{day}/rebuild/runs")
def list_rebuild_runs(day: date, session: Session = Depends(get_session)):
    runs = session.exec(
        select(RebuildRun).where(RebuildRun.day_date == day.isoformat()).order_by(RebuildRun.id)
    ).all()
    return [
        {
            "id": run.id,
            "rebuild_id": run.rebuild_id,
            "template_name": run.template_name,
            "direction": run.direction,
            "transition_minute": run.transition_minute,
            "ok": run.ok,
            "error_code": run.error_code,
            "dropped": run.dropped,
            "created_at": run.created_at,
            "summary": json.loads(run.summary_json) if run.summary_json else None,
        }
        for run in runs
    ]
