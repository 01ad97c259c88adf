from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class DaySchedule(SQLModel, table=True):
    __tablename__ = "dayschedule"

    id: Optional[int] = Field(default=None, primary_key=True)
    day_date: str = Field(index=True, unique=True)  # ISO date
    template_name: Optional[str] = Field(default=None)
    timeline: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    # bunk -> per-slot entries (None for empty slots)
    assignments: Dict[str, List[Optional[Dict[str, Any]]]] = Field(default_factory=dict, sa_column=Column(JSON))
    pending_rebuild_id: Optional[str] = Field(default=None, max_length=32)
    is_rainy: bool = Field(default=False)
    pre_rainy_template_name: Optional[str] = Field(default=None)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)},
    )
