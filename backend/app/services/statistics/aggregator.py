"""
Statistics Aggregator

Composes the week accounting into the three views served to the API:
- Per-account statistics (one user's persons and the reports they filed)
- Global statistics (every person and report in the system)
- Per-account breakdown inside the global view, each account accounted in isolation

Orphaned reports (reports whose person no longer exists) never enter the
accounting; their count is surfaced as an advisory warning.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from ...config import RECENT_REPORTS_LIMIT, STATS_WEEK_LIMIT
from .accounting import (
    CompletionLedger,
    ReportCountPolicy,
    ReportEvent,
    TrackedEntity,
    accumulate,
    partition_reports,
)
from .store import AccountRef, StatisticsStore

logger = logging.getLogger(__name__)


class AccountNotFoundError(LookupError):
    """Statistics were requested for an account that does not exist."""


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class WeekStat:
    week: str
    expected: int
    actual: int
    missing: int
    completion_rate: str


@dataclass
class RecentReport:
    report_id: str
    person_id: str
    person_name: str
    week_of: datetime
    contacted: bool
    created_at: datetime
    reported_by: Optional[str] = None


@dataclass
class StatisticsTotals:
    total_contacts: int
    total_reports: int
    total_expected_reports: int
    total_actual_reports: int
    total_missing_reports: int
    report_completion_rate: str
    weeks_tracked: int


@dataclass
class GlobalTotals(StatisticsTotals):
    total_users: int = 0
    active_users: int = 0


@dataclass
class AccountBreakdown:
    user_id: str
    username: str
    total_contacts: int
    expected_reports: int
    actual_reports: int
    missing_reports: int
    completion_rate: str


@dataclass
class AccountStatistics:
    user: AccountRef
    statistics: StatisticsTotals
    week_stats: List[WeekStat]
    recent_reports: List[RecentReport]
    orphaned_reports: int = 0
    orphan_warning: Optional[str] = None


@dataclass
class GlobalStatistics:
    statistics: GlobalTotals
    week_stats: List[WeekStat]
    user_report_stats: List[AccountBreakdown] = field(default_factory=list)
    recent_reports: List[RecentReport] = field(default_factory=list)
    orphaned_reports: int = 0
    orphan_warning: Optional[str] = None


def orphan_warning(count: int) -> Optional[str]:
    if count <= 0:
        return None
    return (
        f"Found {count} orphaned report(s) (reports for deleted contacts). "
        "Run cleanup script to remove them."
    )


class StatisticsAggregator:
    """
    Computes report-completion statistics from a store snapshot.

    All data is read up front; the accounting itself is pure.
    """

    def __init__(
        self,
        store: StatisticsStore,
        policy: ReportCountPolicy = ReportCountPolicy.RAW,
        week_limit: int = STATS_WEEK_LIMIT,
        recent_limit: int = RECENT_REPORTS_LIMIT,
    ):
        self.store = store
        self.policy = policy
        self.week_limit = week_limit
        self.recent_limit = recent_limit

    def compute_account_statistics(
        self,
        owner_id: str,
        now: Optional[datetime] = None,
    ) -> AccountStatistics:
        """
        Statistics for one account: its persons and the reports it filed.

        Raises:
            AccountNotFoundError: owner_id is not a known account
        """
        now = now or datetime.now(timezone.utc)

        account = self.store.find_account(owner_id)
        if account is None:
            raise AccountNotFoundError(owner_id)

        entities = self.store.list_entities(owner_id=owner_id)
        events = self.store.list_events(filer_id=owner_id)
        partition = partition_reports((e.id for e in entities), events)
        ledger = accumulate(entities, partition.valid, now, self.policy)

        names = {e.id: e.name for e in entities}
        recent = sorted(
            partition.valid,
            key=lambda ev: (ev.report_week, ev.created_at),
            reverse=True,
        )[: self.recent_limit]

        if partition.orphan_count:
            logger.warning(
                f"Orphaned reports detected for user {owner_id}: {partition.orphan_count}"
            )

        return AccountStatistics(
            user=account,
            statistics=StatisticsTotals(
                total_contacts=len(entities),
                total_reports=len(partition.valid),
                **self._ledger_totals(ledger),
            ),
            week_stats=self._week_stats(ledger),
            recent_reports=[self._recent(ev, names) for ev in recent],
            orphaned_reports=partition.orphan_count,
            orphan_warning=orphan_warning(partition.orphan_count),
        )

    def compute_global_statistics(self, now: Optional[datetime] = None) -> GlobalStatistics:
        """
        System-wide statistics plus an isolated rollup for every account owning persons.

        Global week buckets are computed once over everything; each account's
        breakdown re-runs the accounting over only that account's persons and
        the reports it filed against them.
        """
        now = now or datetime.now(timezone.utc)

        entities = self.store.list_entities()
        events = self.store.list_events()
        partition = partition_reports((e.id for e in entities), events)
        ledger = accumulate(entities, partition.valid, now, self.policy)

        owners = self.store.distinct_owners(entities)
        breakdown = [
            self._account_breakdown(owner_id, entities, partition.valid, now)
            for owner_id in owners
        ]
        usernames = self.store.account_names(
            owners + [ev.filer_id for ev in partition.valid]
        )
        for row in breakdown:
            row.username = usernames.get(row.user_id, "Unknown")
        breakdown.sort(key=lambda row: row.username.lower())

        names = {e.id: e.name for e in entities}
        recent = sorted(partition.valid, key=lambda ev: ev.created_at, reverse=True)[: self.recent_limit]

        if partition.orphan_count:
            logger.warning(f"Orphaned reports detected system-wide: {partition.orphan_count}")

        return GlobalStatistics(
            statistics=GlobalTotals(
                total_contacts=len(entities),
                total_reports=len(partition.valid),
                total_users=self.store.count_accounts(),
                active_users=len(owners),
                **self._ledger_totals(ledger),
            ),
            week_stats=self._week_stats(ledger),
            user_report_stats=breakdown,
            recent_reports=[
                self._recent(ev, names, reporter=usernames.get(ev.filer_id, "Unknown"))
                for ev in recent
            ],
            orphaned_reports=partition.orphan_count,
            orphan_warning=orphan_warning(partition.orphan_count),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _account_breakdown(
        self,
        owner_id: str,
        entities: List[TrackedEntity],
        valid_events: Tuple[ReportEvent, ...],
        now: datetime,
    ) -> AccountBreakdown:
        owned = [e for e in entities if e.owner_id == owner_id]
        owned_ids = {e.id for e in owned}
        filed = [
            ev for ev in valid_events
            if ev.filer_id == owner_id and ev.entity_id in owned_ids
        ]
        ledger = accumulate(owned, filed, now, self.policy)
        return AccountBreakdown(
            user_id=owner_id,
            username="Unknown",
            total_contacts=len(owned),
            expected_reports=ledger.total_expected,
            actual_reports=ledger.total_actual,
            missing_reports=ledger.total_missing,
            completion_rate=ledger.completion_rate,
        )

    @staticmethod
    def _ledger_totals(ledger: CompletionLedger) -> Dict[str, object]:
        return {
            "total_expected_reports": ledger.total_expected,
            "total_actual_reports": ledger.total_actual,
            "total_missing_reports": ledger.total_missing,
            "report_completion_rate": ledger.completion_rate,
            "weeks_tracked": len(ledger.buckets),
        }

    def _week_stats(self, ledger: CompletionLedger) -> List[WeekStat]:
        return [
            WeekStat(
                week=bucket.key,
                expected=bucket.expected,
                actual=bucket.actual,
                missing=bucket.missing,
                completion_rate=bucket.completion_rate,
            )
            for bucket in ledger.newest_first(self.week_limit)
        ]

    @staticmethod
    def _recent(
        event: ReportEvent,
        names: Dict[str, Optional[str]],
        reporter: Optional[str] = None,
    ) -> RecentReport:
        return RecentReport(
            report_id=event.id,
            person_id=event.entity_id,
            person_name=names.get(event.entity_id) or "Unknown",
            week_of=event.report_week,
            contacted=event.outcome,
            created_at=event.created_at,
            reported_by=reporter,
        )
