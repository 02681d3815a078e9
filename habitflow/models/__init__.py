from .habit import Habit, HabitOccurrence
