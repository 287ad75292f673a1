"""create timetable slots, day partitions and activity logs

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None

WEEKDAYS = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY")

day_of_week = postgresql.ENUM(*WEEKDAYS, name="day_of_week", create_type=False)
slot_type = postgresql.ENUM("LECTURE", "LAB", "TUTORIAL", "SEMINAR", name="slot_type", create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    day_of_week.create(bind, checkfirst=True)
    slot_type.create(bind, checkfirst=True)

    op.create_table(
        "timetable_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("day_of_week", day_of_week, nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("teacher_id", sa.String(length=36), sa.ForeignKey("teachers.id"), nullable=False),
        sa.Column("room_id", sa.String(length=36), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("type", slot_type, nullable=False, server_default="LECTURE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_timetable_slots_day_teacher", "timetable_slots", ["day_of_week", "teacher_id"])
    op.create_index("ix_timetable_slots_day_room", "timetable_slots", ["day_of_week", "room_id"])
    op.create_index("ix_timetable_slots_day_class", "timetable_slots", ["day_of_week", "class_id"])

    partitions = op.create_table(
        "timetable_day_partitions",
        sa.Column("day_of_week", day_of_week, primary_key=True, nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.bulk_insert(partitions, [{"day_of_week": day, "version": 1} for day in WEEKDAYS])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_entity", "activity_logs", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_entity", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_table("timetable_day_partitions")
    op.drop_index("ix_timetable_slots_day_class", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_day_room", table_name="timetable_slots")
    op.drop_index("ix_timetable_slots_day_teacher", table_name="timetable_slots")
    op.drop_table("timetable_slots")
    bind = op.get_bind()
    slot_type.drop(bind, checkfirst=True)
    day_of_week.drop(bind, checkfirst=True)
