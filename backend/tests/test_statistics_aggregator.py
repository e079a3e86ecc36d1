"""
Tests for the statistics aggregator.

Runs the full read path (SQLAlchemy store -> accounting -> result types)
against an in-memory database:
1. Per-account week buckets and totals
2. Orphaned reports flagged, never counted
3. Global view and per-account breakdown agree on expected counts
4. Week and recent-report caps
5. Unknown accounts rejected
"""
import logging
from datetime import datetime, timedelta

import pytest

from app.services.statistics import (
    AccountNotFoundError,
    ReportCountPolicy,
    StatisticsAggregator,
    StatisticsStore,
)

NOW = datetime(2024, 1, 10, 12, 0)  # Wednesday


@pytest.fixture
def aggregator(db):
    return StatisticsAggregator(StatisticsStore(db))


# =============================================================================
# TEST: PER-ACCOUNT STATISTICS
# =============================================================================

class TestAccountStatistics:

    def test_two_week_scenario(self, aggregator, make_user, make_person, make_report):
        """Person created last week with one report: one week done, one missing."""
        user = make_user("alice")
        person = make_person(user, created_at=datetime(2024, 1, 3, 9))
        make_report(person.id, user, week_of=datetime(2024, 1, 1))

        result = aggregator.compute_account_statistics(user.id, now=NOW)

        assert result.user.username == "alice"
        assert [(w.week, w.expected, w.actual, w.missing, w.completion_rate) for w in result.week_stats] == [
            ("2024-01-08", 1, 0, 1, "0.0"),
            ("2024-01-01", 1, 1, 0, "100.0"),
        ]
        stats = result.statistics
        assert stats.total_contacts == 1
        assert stats.total_reports == 1
        assert stats.total_expected_reports == 2
        assert stats.total_actual_reports == 1
        assert stats.total_missing_reports == 1
        assert stats.report_completion_rate == "50.0"
        assert stats.weeks_tracked == 2
        assert result.orphaned_reports == 0
        assert result.orphan_warning is None

    def test_account_without_persons(self, aggregator, make_user):
        user = make_user()
        result = aggregator.compute_account_statistics(user.id, now=NOW)

        assert result.week_stats == []
        assert result.recent_reports == []
        assert result.statistics.total_expected_reports == 0
        assert result.statistics.report_completion_rate == "0"

    def test_other_accounts_are_excluded(self, aggregator, make_user, make_person, make_report):
        alice = make_user("alice")
        bob = make_user("bob")
        make_person(alice, created_at=datetime(2024, 1, 8))
        bobs_person = make_person(bob, created_at=datetime(2024, 1, 8))
        make_report(bobs_person.id, bob, week_of=datetime(2024, 1, 8))

        result = aggregator.compute_account_statistics(alice.id, now=NOW)

        assert result.statistics.total_contacts == 1
        assert result.statistics.total_actual_reports == 0
        assert result.recent_reports == []

    def test_orphaned_reports_are_flagged_not_counted(
        self, aggregator, make_user, make_person, make_report, caplog
    ):
        user = make_user()
        person = make_person(user, created_at=datetime(2024, 1, 1))
        make_report(person.id, user, week_of=datetime(2024, 1, 1))
        make_report(person.id, user, week_of=datetime(2024, 1, 8))
        make_report("00000000-0000-0000-0000-000000000000", user, week_of=datetime(2024, 1, 8))

        with caplog.at_level(logging.WARNING):
            result = aggregator.compute_account_statistics(user.id, now=NOW)

        assert result.statistics.total_reports == 2
        assert result.statistics.total_actual_reports == 2
        assert result.orphaned_reports == 1
        assert result.orphan_warning == (
            "Found 1 orphaned report(s) (reports for deleted contacts). "
            "Run cleanup script to remove them."
        )
        assert all(r.person_id == person.id for r in result.recent_reports)
        assert "Orphaned reports detected" in caplog.text

    def test_recent_reports_newest_week_first(self, aggregator, make_user, make_person, make_report):
        user = make_user()
        person = make_person(user, created_at=datetime(2023, 12, 1), name="Ruth")
        make_report(person.id, user, week_of=datetime(2023, 12, 4), created_at=datetime(2024, 1, 9))
        make_report(person.id, user, week_of=datetime(2024, 1, 8), created_at=datetime(2024, 1, 8))
        make_report(person.id, user, week_of=datetime(2023, 12, 18), created_at=datetime(2023, 12, 20))

        result = aggregator.compute_account_statistics(user.id, now=NOW)

        assert [r.week_of for r in result.recent_reports] == [
            datetime(2024, 1, 8),
            datetime(2023, 12, 18),
            datetime(2023, 12, 4),
        ]
        assert result.recent_reports[0].person_name == "Ruth"

    def test_limits_are_applied(self, db, make_user, make_person, make_report):
        user = make_user()
        person = make_person(user, created_at=datetime(2023, 6, 5))
        for weeks_back in range(15):
            make_report(person.id, user, week_of=datetime(2024, 1, 8) - timedelta(weeks=weeks_back))

        aggregator = StatisticsAggregator(StatisticsStore(db), week_limit=12, recent_limit=10)
        result = aggregator.compute_account_statistics(user.id, now=NOW)

        assert len(result.week_stats) == 12
        assert result.week_stats[0].week == "2024-01-08"
        assert len(result.recent_reports) == 10
        assert result.statistics.weeks_tracked > 12
        assert result.statistics.total_actual_reports == 15

    def test_distinct_policy(self, db, make_user, make_person, make_report):
        user = make_user()
        person = make_person(user, created_at=datetime(2024, 1, 8))
        make_report(person.id, user, week_of=datetime(2024, 1, 8))
        make_report(person.id, user, week_of=datetime(2024, 1, 9))

        raw = StatisticsAggregator(StatisticsStore(db)).compute_account_statistics(user.id, now=NOW)
        distinct = StatisticsAggregator(
            StatisticsStore(db), policy=ReportCountPolicy.DISTINCT
        ).compute_account_statistics(user.id, now=NOW)

        assert raw.statistics.total_actual_reports == 2
        assert raw.statistics.total_missing_reports == -1
        assert distinct.statistics.total_actual_reports == 1
        assert distinct.statistics.report_completion_rate == "100.0"

    def test_unknown_account_raises(self, aggregator):
        with pytest.raises(AccountNotFoundError):
            aggregator.compute_account_statistics("4b0a3f5e-0000-4000-8000-000000000000", now=NOW)


# =============================================================================
# TEST: GLOBAL STATISTICS
# =============================================================================

class TestGlobalStatistics:

    def test_breakdown_matches_per_account_statistics(
        self, aggregator, make_user, make_person, make_report
    ):
        """Expected counts per account sum to the global expected count."""
        alice = make_user("alice")
        bob = make_user("bob")
        make_user("carol")  # owns nothing
        a1 = make_person(alice, created_at=datetime(2024, 1, 1))
        make_person(alice, created_at=datetime(2024, 1, 9))
        b1 = make_person(bob, created_at=datetime(2023, 12, 25))
        make_report(a1.id, alice, week_of=datetime(2024, 1, 1))
        make_report(b1.id, bob, week_of=datetime(2024, 1, 8))

        result = aggregator.compute_global_statistics(now=NOW)

        assert [row.username for row in result.user_report_stats] == ["alice", "bob"]
        assert sum(row.expected_reports for row in result.user_report_stats) == \
            result.statistics.total_expected_reports
        for row in result.user_report_stats:
            account = aggregator.compute_account_statistics(row.user_id, now=NOW)
            assert row.expected_reports == account.statistics.total_expected_reports
            assert row.actual_reports == account.statistics.total_actual_reports

        alice_row = result.user_report_stats[0]
        assert (alice_row.total_contacts, alice_row.expected_reports, alice_row.actual_reports) == (2, 3, 1)
        assert alice_row.completion_rate == "33.3"

        stats = result.statistics
        assert stats.total_users == 3
        assert stats.active_users == 2
        assert stats.total_contacts == 3
        assert stats.total_expected_reports == 6
        assert stats.total_actual_reports == 2

    def test_recent_reports_carry_reporter_name(self, aggregator, make_user, make_person, make_report):
        user = make_user("dana")
        person = make_person(user, created_at=datetime(2024, 1, 1))
        make_report(person.id, user, week_of=datetime(2024, 1, 1), created_at=datetime(2024, 1, 2))
        make_report(person.id, user, week_of=datetime(2024, 1, 8), created_at=datetime(2024, 1, 9))

        result = aggregator.compute_global_statistics(now=NOW)

        assert [r.created_at for r in result.recent_reports] == [datetime(2024, 1, 9), datetime(2024, 1, 2)]
        assert all(r.reported_by == "dana" for r in result.recent_reports)

    def test_orphans_counted_system_wide(self, aggregator, make_user, make_person, make_report):
        user = make_user()
        make_person(user, created_at=datetime(2024, 1, 8))
        make_report("11111111-1111-4111-8111-111111111111", user, week_of=datetime(2024, 1, 8))
        make_report("22222222-2222-4222-8222-222222222222", user, week_of=datetime(2024, 1, 8))

        result = aggregator.compute_global_statistics(now=NOW)

        assert result.orphaned_reports == 2
        assert result.orphan_warning.startswith("Found 2 orphaned report(s)")
        assert result.statistics.total_reports == 0
        assert result.recent_reports == []

    def test_empty_system(self, aggregator):
        result = aggregator.compute_global_statistics(now=NOW)

        assert result.statistics.total_users == 0
        assert result.statistics.report_completion_rate == "0"
        assert result.user_report_stats == []
        assert result.orphan_warning is None
