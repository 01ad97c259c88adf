from typing import Optional

from sqlmodel import Field, SQLModel


class SpecialActivity(SQLModel, table=True):
    __tablename__ = "specialactivity"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    setup_minutes: int = Field(default=0)
