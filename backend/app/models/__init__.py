from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.class_section import ClassSection  # noqa: F401
from app.models.room import Room  # noqa: F401
from app.models.subject import Subject  # noqa: F401
from app.models.teacher import Teacher  # noqa: F401
from app.models.timetable import DayOfWeek, DayPartition, SlotType, TimetableSlot, WEEKDAYS  # noqa: F401
