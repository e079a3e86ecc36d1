"""
Tests for the maintenance scripts: orphaned report cleanup and admin seeding.
"""
from datetime import datetime

from app.auth import ROLE_ADMIN, verify_password
from app.models.db_models import UserDB, WeeklyReportDB
from scripts.cleanup_orphaned_reports import cleanup_orphaned_reports
from scripts.seed_admin import create_admin_user

GONE_PERSON_ID = "5f3e2d1c-0b9a-4876-a543-210fedcba987"


# =============================================================================
# TEST: ORPHANED REPORT CLEANUP
# =============================================================================

class TestCleanupOrphanedReports:

    def test_dry_run_counts_without_deleting(self, db, make_user, make_person, make_report):
        user = make_user()
        person = make_person(user)
        make_report(person.id, user, week_of=datetime(2024, 1, 1))
        make_report(GONE_PERSON_ID, user, week_of=datetime(2024, 1, 1))

        summary = cleanup_orphaned_reports(dry_run=True, db=db)

        assert summary == {"valid_persons": 1, "orphaned_reports": 1, "deleted_reports": 0}
        assert db.query(WeeklyReportDB).count() == 2

    def test_deletes_only_orphans(self, db, make_user, make_person, make_report):
        user = make_user()
        person = make_person(user)
        kept = make_report(person.id, user, week_of=datetime(2024, 1, 1))
        kept_id = kept.id
        make_report(GONE_PERSON_ID, user, week_of=datetime(2024, 1, 1))
        make_report(GONE_PERSON_ID, user, week_of=datetime(2024, 1, 8))

        summary = cleanup_orphaned_reports(db=db)

        assert summary["orphaned_reports"] == 2
        assert summary["deleted_reports"] == 2
        db.expire_all()
        assert [r.id for r in db.query(WeeklyReportDB).all()] == [kept_id]

    def test_clean_database(self, db, make_user, make_person):
        make_person(make_user())
        summary = cleanup_orphaned_reports(db=db)
        assert summary == {"valid_persons": 1, "orphaned_reports": 0, "deleted_reports": 0}


# =============================================================================
# TEST: ADMIN SEEDING
# =============================================================================

class TestSeedAdmin:

    def test_creates_admin(self, db):
        assert create_admin_user("boss", "Admin!Pass1", "Boss@Example.com", db=db) is True

        user = db.query(UserDB).filter(UserDB.username == "boss").one()
        assert user.role == ROLE_ADMIN
        assert user.email == "boss@example.com"
        assert verify_password("Admin!Pass1", user.password_hash)

    def test_upgrades_existing_user(self, db, make_user):
        make_user("promoted")
        assert create_admin_user("promoted", "Whatever!1", db=db) is True

        db.expire_all()
        assert db.query(UserDB).filter(UserDB.username == "promoted").one().role == ROLE_ADMIN

    def test_existing_admin_is_left_alone(self, db, make_user):
        make_user("already", role=ROLE_ADMIN)
        assert create_admin_user("already", "Whatever!1", db=db) is False

    def test_email_in_use(self, db):
        db.add(UserDB(id="c0ffee00-0000-4000-8000-000000000001", username="holder", email="used@example.com"))
        db.commit()

        assert create_admin_user("newcomer", "Admin!Pass1", "used@example.com", db=db) is False
        assert db.query(UserDB).filter(UserDB.username == "newcomer").count() == 0
