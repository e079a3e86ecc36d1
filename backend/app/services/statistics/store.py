"""
Read-side queries the statistics engine needs, backed by SQLAlchemy.

Rows are converted to immutable snapshot records once per computation.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models.db_models import UserDB, PersonDB, WeeklyReportDB
from .accounting import TrackedEntity, ReportEvent


@dataclass(frozen=True)
class AccountRef:
    id: str
    username: str


class StatisticsStore:
    """Query surface over users, persons and weekly reports."""

    def __init__(self, db: Session):
        self.db = db

    def list_entities(self, owner_id: Optional[str] = None) -> List[TrackedEntity]:
        query = self.db.query(
            PersonDB.id, PersonDB.created_by, PersonDB.created_at, PersonDB.name
        )
        if owner_id is not None:
            query = query.filter(PersonDB.created_by == owner_id)
        return [
            TrackedEntity(id=row.id, owner_id=row.created_by, created_at=row.created_at, name=row.name)
            for row in query.all()
        ]

    def list_events(self, filer_id: Optional[str] = None) -> List[ReportEvent]:
        query = self.db.query(
            WeeklyReportDB.id,
            WeeklyReportDB.person_id,
            WeeklyReportDB.reported_by,
            WeeklyReportDB.week_of,
            WeeklyReportDB.contacted,
            WeeklyReportDB.created_at,
        )
        if filer_id is not None:
            query = query.filter(WeeklyReportDB.reported_by == filer_id)
        return [
            ReportEvent(
                id=row.id,
                entity_id=row.person_id,
                filer_id=row.reported_by,
                report_week=row.week_of,
                outcome=row.contacted,
                created_at=row.created_at,
            )
            for row in query.all()
        ]

    @staticmethod
    def distinct_owners(entities: Iterable[TrackedEntity]) -> List[str]:
        return sorted({entity.owner_id for entity in entities})

    def find_account(self, account_id: str) -> Optional[AccountRef]:
        user = self.db.query(UserDB.id, UserDB.username).filter(UserDB.id == account_id).first()
        if user is None:
            return None
        return AccountRef(id=user.id, username=user.username)

    def count_accounts(self) -> int:
        return self.db.query(func.count(UserDB.id)).scalar() or 0

    def account_names(self, account_ids: Iterable[str]) -> Dict[str, str]:
        ids = list(set(account_ids))
        if not ids:
            return {}
        rows = self.db.query(UserDB.id, UserDB.username).filter(UserDB.id.in_(ids)).all()
        return {row.id: row.username for row in rows}
