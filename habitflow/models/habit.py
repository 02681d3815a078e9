from sqlalchemy import Column, String, Integer, Date, DateTime, Text, Boolean, JSON
from sqlalchemy.sql import func
from habitflow.db.base import Base


class Habit(Base):
    __tablename__ = "habits"

    id = Column(String, primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="Other")
    priority = Column(String, nullable=False, default="Medium")  # High, Medium, Low
    xp_value = Column(Integer, nullable=False, default=10)
    anchor_date = Column(Date, nullable=False)
    recurrence_kind = Column(String, nullable=False, default="None")  # None, Daily, Weekly, Custom
    weekdays = Column(JSON, nullable=True)  # Sunday=0 .. Saturday=6
    times_per_week = Column(Integer, nullable=True)
    project_id = Column(String, nullable=True)
    goal_id = Column(String, nullable=True)
    subtasks = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<Habit(title='{self.title}', recurrence='{self.recurrence_kind}')>"


class HabitOccurrence(Base):
    __tablename__ = "habit_occurrences"

    # "<habit_id>_<YYYY-MM-DD>"
    id = Column(String, primary_key=True)
    # No foreign key: past occurrences outlive a deleted habit
    habit_id = Column(String, nullable=False, index=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    week_start_date = Column(Date, nullable=True)
    weekly_completion_count = Column(Integer, nullable=True)

    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default="Other")
    priority = Column(String, nullable=False, default="Medium")
    xp_value = Column(Integer, nullable=False, default=10)
    recurrence_kind = Column(String, nullable=False, default="None")
    weekdays = Column(JSON, nullable=True)
    times_per_week = Column(Integer, nullable=True)
    project_id = Column(String, nullable=True)
    goal_id = Column(String, nullable=True)
    subtasks = Column(JSON, nullable=True)

    def __repr__(self):
        return f"<HabitOccurrence(habit_id='{self.habit_id}', date='{self.scheduled_date}')>"
