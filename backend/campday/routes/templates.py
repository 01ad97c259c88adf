from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from campday.database import get_session
from campday.models.day_template import DayTemplate
from campday.utils.clock import parse_clock_string

router = APIRouter()


def validate_block_records(blocks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Shared check for template and live-timeline uploads."""
    for i, block in enumerate(blocks):
        if not block.get("division"):
            raise ValueError(f"block {i}: division is required")
        start = parse_clock_string(block.get("startTime", block.get("startMin")))
        end = parse_clock_string(block.get("endTime", block.get("endMin")))
        if start is None or end is None:
            raise ValueError(f"block {i}: startTime/endTime must be clock strings like '9:00am' or '14:30'")
        if end <= start:
            raise ValueError(f"block {i}: endTime must be after startTime")
    return blocks


class TemplateUpsert(BaseModel):
    blocks: List[Dict[str, Any]]

    @field_validator("blocks")
    @classmethod
    def validate_blocks(cls, v):
        if not v:
            raise ValueError("blocks cannot be empty")
        return validate_block_records(v)


class TemplateSummary(BaseModel):
    name: str
    block_count: int
    divisions: List[str]
    updated_at: datetime


class TemplateResponse(BaseModel):
    name: str
    blocks: List[Dict[str, Any]]
    updated_at: datetime


def _summary(template: DayTemplate) -> TemplateSummary:
    divisions = []
    for block in template.blocks or []:
        div = str(block.get("division"))
        if div not in divisions:
            divisions.append(div)
    return TemplateSummary(
        name=template.name,
        block_count=len(template.blocks or []),
        divisions=divisions,
        updated_at=template.updated_at,
    )


def _get_template(session: Session, name: str) -> DayTemplate:
    template = session.exec(select(DayTemplate).where(DayTemplate.name == name)).first()
    if not template:
        raise HTTPException(status_code=404, detail=f"Template '{name}' not found")
    return template


@router.get("/templates", response_model=List[TemplateSummary])
def list_templates(session: Session = Depends(get_session)):
    templates = session.exec(select(DayTemplate).order_by(DayTemplate.name)).all()
    return [_summary(t) for t in templates]


@router.get("/templates/{name}", response_model=TemplateResponse)
def get_template(name: str, session: Session = Depends(get_session)):
    template = _get_template(session, name)
    return TemplateResponse(name=template.name, blocks=template.blocks or [], updated_at=template.updated_at)


@router.put("/templates/{name}", response_model=TemplateResponse)
def upsert_template(name: str, data: TemplateUpsert, session: Session = Depends(get_session)):
    """Create or replace a named day template"""
    template = session.exec(select(DayTemplate).where(DayTemplate.name == name)).first()
    if template is None:
        template = DayTemplate(name=name, blocks=list(data.blocks))
    else:
        template.blocks = list(data.blocks)
        template.updated_at = datetime.now(timezone.utc)

    session.add(template)
    session.commit()
    session.refresh(template)
    return TemplateResponse(name=template.name, blocks=template.blocks or [], updated_at=template.updated_at)


@router.delete("/templates/{name}")
def delete_template(name: str, session: Session = Depends(get_session)):
    template = _get_template(session, name)
    session.delete(template)
    session.commit()
    return {"deleted": name}
