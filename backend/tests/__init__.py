# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from campday.models.camp_field import CampField  # noqa: F401
from campday.models.camp_settings import CampSettings  # noqa: F401
from campday.models.day_schedule import DaySchedule  # noqa: F401
from campday.models.day_template import DayTemplate  # noqa: F401
from campday.models.division import Division  # noqa: F401
from campday.models.rebuild_run import RebuildRun  # noqa: F401
from campday.models.special_activity import SpecialActivity  # noqa: F401
