"""
Hard Delete Service

Transactional deletion of persons with full teardown of their weekly reports,
and removal of orphaned reports left behind by out-of-band data operations.
No soft-delete, no status flags, no archival.
"""
import logging

from sqlalchemy.orm import Session

from ..models.db_models import PersonDB, WeeklyReportDB
from .statistics import StatisticsStore, partition_reports

logger = logging.getLogger(__name__)


class HardDeleteService:
    """
    Centralized hard delete service.
    Single source of truth for dependency discovery and ordered deletion.
    """

    def __init__(self, db: Session):
        self.db = db

    def delete_person(self, person: PersonDB) -> dict:
        """
        Hard delete a person and every report filed against it.

        Deletion order:
        1. Delete weekly reports by person_id
        2. Delete the person

        Returns cascade counts for confirmation.
        """
        person_id = person.id
        cascade = {"weekly_reports": 0}

        cascade["weekly_reports"] = self.db.query(WeeklyReportDB).filter(
            WeeklyReportDB.person_id == person_id
        ).delete(synchronize_session=False)

        self.db.expire(person, ["reports"])
        self.db.delete(person)
        self.db.commit()

        logger.info(f"Person {person_id} deleted with {cascade['weekly_reports']} report(s)")
        return cascade

    def delete_orphaned_reports(self, dry_run: bool = False) -> dict:
        """
        Remove reports whose person no longer exists.

        Uses the same partitioning as the statistics engine, so whatever the
        statistics flag as orphaned is exactly what gets removed.
        """
        store = StatisticsStore(self.db)
        entities = store.list_entities()
        partition = partition_reports((e.id for e in entities), store.list_events())
        orphan_ids = [event.id for event in partition.orphaned]

        summary = {
            "valid_persons": len(entities),
            "orphaned_reports": len(orphan_ids),
            "deleted_reports": 0,
        }

        if not orphan_ids or dry_run:
            return summary

        summary["deleted_reports"] = self.db.query(WeeklyReportDB).filter(
            WeeklyReportDB.id.in_(orphan_ids)
        ).delete(synchronize_session=False)
        self.db.commit()

        logger.info(f"Deleted {summary['deleted_reports']} orphaned report(s)")
        return summary
