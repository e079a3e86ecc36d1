"""
Report Completion Statistics

Week accounting for tracked persons:
- weeks: Monday-anchored week identifiers and expected-week ranges
- accounting: orphan partitioning and the expected/actual accumulator
- store: SQLAlchemy queries producing immutable snapshots
- aggregator: per-account, global and per-account-breakdown views
"""

from .weeks import week_start, week_key, expected_weeks
from .accounting import (
    ReportCountPolicy,
    TrackedEntity,
    ReportEvent,
    ReportPartition,
    WeekBucket,
    CompletionLedger,
    completion_rate,
    partition_reports,
    accumulate,
)
from .store import StatisticsStore, AccountRef
from .aggregator import (
    StatisticsAggregator,
    AccountNotFoundError,
    AccountStatistics,
    GlobalStatistics,
)

__all__ = [
    'week_start',
    'week_key',
    'expected_weeks',
    'ReportCountPolicy',
    'TrackedEntity',
    'ReportEvent',
    'ReportPartition',
    'WeekBucket',
    'CompletionLedger',
    'completion_rate',
    'partition_reports',
    'accumulate',
    'StatisticsStore',
    'AccountRef',
    'StatisticsAggregator',
    'AccountNotFoundError',
    'AccountStatistics',
    'GlobalStatistics',
]
