from typing import Optional

from sqlmodel import Field, SQLModel


class CampSettings(SQLModel, table=True):
    __tablename__ = "campsettings"

    id: Optional[int] = Field(default=None, primary_key=True)
    camp_name: str = Field(default="Camp")
    rainy_day_template_name: Optional[str] = Field(default=None)
    default_template_name: Optional[str] = Field(default=None)
