from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Column, Field, SQLModel, Text


class RebuildRun(SQLModel, table=True):
    __tablename__ = "rebuildrun"

    id: Optional[int] = Field(default=None, primary_key=True)
    day_date: str = Field(index=True)
    rebuild_id: Optional[str] = Field(default=None, max_length=32, index=True)
    template_name: Optional[str] = Field(default=None)
    direction: str = Field(default="manual", max_length=16)
    transition_minute: Optional[int] = Field(default=None)
    ok: bool = Field(default=True)
    error_code: Optional[str] = Field(default=None)
    dropped: int = Field(default=0)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    summary_json: Optional[str] = Field(default=None, sa_column=Column(Text))
