from typing import Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class CampField(SQLModel, table=True):
    __tablename__ = "campfield"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    capacity: int = Field(default=1)
    time_rules: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    rainy_day_capacity: Optional[int] = Field(default=None)
    rainy_day_available_all_day: bool = Field(default=False)

    # Pre-rain values, saved on the first rainy-day override and restored on clear
    original_saved: bool = Field(default=False)
    original_capacity: Optional[int] = Field(default=None)
    original_time_rules: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON))
