from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from campday.database import get_session
from campday.models.camp_field import CampField
from campday.models.camp_settings import CampSettings
from campday.models.division import Division
from campday.models.special_activity import SpecialActivity
from campday.services.sql_store import get_camp_settings

router = APIRouter()


# ============================================================================
# Divisions
# ============================================================================


class DivisionUpsert(BaseModel):
    sort_order: int = 0
    bunks: List[str] = []

    @field_validator("bunks")
    @classmethod
    def validate_bunks(cls, v):
        cleaned = [str(b).strip() for b in v]
        if any(not b for b in cleaned):
            raise ValueError("bunk names cannot be empty")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("bunk names must be unique within a division")
        return cleaned


class DivisionResponse(BaseModel):
    name: str
    sort_order: int
    bunks: List[str]

    class Config:
        from_attributes = True


@router.get("/divisions", response_model=List[DivisionResponse])
def list_divisions(session: Session = Depends(get_session)):
    return session.exec(select(Division).order_by(Division.sort_order, Division.name)).all()


@router.get("/divisions/{name}", response_model=DivisionResponse)
def get_division(name: str, session: Session = Depends(get_session)):
    division = session.exec(select(Division).where(Division.name == name)).first()
    if not division:
        raise HTTPException(status_code=404, detail=f"Division '{name}' not found")
    return division


@router.put("/divisions/{name}", response_model=DivisionResponse)
def upsert_division(name: str, data: DivisionUpsert, session: Session = Depends(get_session)):
    """Create or update a division and its bunk list"""
    others = session.exec(select(Division).where(Division.name != name)).all()
    for other in others:
        clash = set(other.bunks or []) & set(data.bunks)
        if clash:
            raise HTTPException(
                status_code=409,
                detail=f"Bunk(s) {sorted(clash)} already belong to division '{other.name}'",
            )

    division = session.exec(select(Division).where(Division.name == name)).first()
    if division is None:
        division = Division(name=name)
    division.sort_order = data.sort_order
    division.bunks = list(data.bunks)

    session.add(division)
    session.commit()
    session.refresh(division)
    return division


# ============================================================================
# Special activities
# ============================================================================


class SpecialActivityUpsert(BaseModel):
    setup_minutes: int = 0

    @field_validator("setup_minutes")
    @classmethod
    def validate_setup_minutes(cls, v):
        if v < 0:
            raise ValueError("setup_minutes must be >= 0")
        return v


class SpecialActivityResponse(BaseModel):
    name: str
    setup_minutes: int

    class Config:
        from_attributes = True


@router.get("/special-activities", response_model=List[SpecialActivityResponse])
def list_special_activities(session: Session = Depends(get_session)):
    return session.exec(select(SpecialActivity).order_by(SpecialActivity.name)).all()


@router.put("/special-activities/{name}", response_model=SpecialActivityResponse)
def upsert_special_activity(name: str, data: SpecialActivityUpsert, session: Session = Depends(get_session)):
    activity = session.exec(select(SpecialActivity).where(SpecialActivity.name == name)).first()
    if activity is None:
        activity = SpecialActivity(name=name)
    activity.setup_minutes = data.setup_minutes

    session.add(activity)
    session.commit()
    session.refresh(activity)
    return activity


# ============================================================================
# Fields
# ============================================================================


class FieldUpsert(BaseModel):
    capacity: int = 1
    time_rules: List[Dict[str, Any]] = []
    rainy_day_capacity: Optional[int] = None
    rainy_day_available_all_day: bool = False

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v):
        if v < 0:
            raise ValueError("capacity must be >= 0")
        return v


class FieldResponse(BaseModel):
    name: str
    capacity: int
    time_rules: List[Dict[str, Any]]
    rainy_day_capacity: Optional[int]
    rainy_day_available_all_day: bool
    original_saved: bool
    original_capacity: Optional[int]

    class Config:
        from_attributes = True


@router.get("/fields", response_model=List[FieldResponse])
def list_fields(session: Session = Depends(get_session)):
    return session.exec(select(CampField).order_by(CampField.name)).all()


@router.get("/fields/{name}", response_model=FieldResponse)
def get_field(name: str, session: Session = Depends(get_session)):
    field = session.exec(select(CampField).where(CampField.name == name)).first()
    if not field:
        raise HTTPException(status_code=404, detail=f"Field '{name}' not found")
    return field


@router.put("/fields/{name}", response_model=FieldResponse)
def upsert_field(name: str, data: FieldUpsert, session: Session = Depends(get_session)):
    field = session.exec(select(CampField).where(CampField.name == name)).first()
    if field is None:
        field = CampField(name=name)
    field.capacity = data.capacity
    field.time_rules = list(data.time_rules)
    field.rainy_day_capacity = data.rainy_day_capacity
    field.rainy_day_available_all_day = data.rainy_day_available_all_day

    session.add(field)
    session.commit()
    session.refresh(field)
    return field


# ============================================================================
# Camp settings
# ============================================================================


class SettingsUpdate(BaseModel):
    camp_name: Optional[str] = None
    rainy_day_template_name: Optional[str] = None
    default_template_name: Optional[str] = None


class SettingsResponse(BaseModel):
    camp_name: str
    rainy_day_template_name: Optional[str]
    default_template_name: Optional[str]

    class Config:
        from_attributes = True


@router.get("/settings", response_model=SettingsResponse)
def get_settings(session: Session = Depends(get_session)):
    return get_camp_settings(session)


@router.put("/settings", response_model=SettingsResponse)
def update_settings(data: SettingsUpdate, session: Session = Depends(get_session)):
    settings: CampSettings = get_camp_settings(session)
    for key, value in data.model_dump(exclude_unset=True).items():
        if key == "camp_name" and not value:
            continue
        setattr(settings, key, value)

    session.add(settings)
    session.commit()
    session.refresh(settings)
    return settings
