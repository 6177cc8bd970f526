# models/__init__.py

from .interns import Intern
from .daily_log import DailyLog
from .period_entry import PeriodEntry
from .merged_log import MergedDailyLog

__all__ = [
    "Intern",
    "DailyLog",
    "PeriodEntry",
    "MergedDailyLog",
]
