"""Follow-Up Unit - Data Models"""
from .db_models import UserDB, PersonDB, WeeklyReportDB

__all__ = [
    "UserDB",
    "PersonDB",
    "WeeklyReportDB",
]
