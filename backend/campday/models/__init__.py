from campday.models.camp_field import CampField
from campday.models.camp_settings import CampSettings
from campday.models.day_schedule import DaySchedule
from campday.models.day_template import DayTemplate
from campday.models.division import Division
from campday.models.rebuild_run import RebuildRun
from campday.models.special_activity import SpecialActivity

__all__ = [
    "CampField",
    "CampSettings",
    "DaySchedule",
    "DayTemplate",
    "Division",
    "RebuildRun",
    "SpecialActivity",
]
