"""
Weekly completion accounting.

Given tracked persons (with creation timestamps) and the weekly reports filed
against them, computes how many reports were expected per week and how many
were actually filed.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, Iterable, Optional, Set, Tuple

from .weeks import expected_weeks, week_key, week_start

ONE_DECIMAL = Decimal("0.1")


class ReportCountPolicy(str, Enum):
    """How reports landing in the same person-week are counted."""
    RAW = "raw"            # Every report counts, duplicates included
    DISTINCT = "distinct"  # At most one report per person per week

    @classmethod
    def from_setting(cls, value: Optional[str]) -> "ReportCountPolicy":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.RAW


@dataclass(frozen=True)
class TrackedEntity:
    """Snapshot of a person as the accounting sees it."""
    id: str
    owner_id: str
    created_at: datetime
    name: Optional[str] = None


@dataclass(frozen=True)
class ReportEvent:
    """Snapshot of a weekly report."""
    id: str
    entity_id: str
    filer_id: str
    report_week: datetime
    outcome: bool
    created_at: datetime


@dataclass(frozen=True)
class ReportPartition:
    """Reports split by whether their person still exists."""
    valid: Tuple[ReportEvent, ...]
    orphaned: Tuple[ReportEvent, ...]

    @property
    def orphan_count(self) -> int:
        return len(self.orphaned)


def completion_rate(actual: int, expected: int) -> str:
    """
    Percentage with one decimal ("50.0"); "0" when nothing was expected.

    Ties round half up on the exact float value ("6.3" for 1 of 16).
    """
    if expected <= 0:
        return "0"
    rate = Decimal(actual / expected * 100).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return str(rate)


@dataclass(frozen=True)
class WeekBucket:
    week: datetime
    expected: int
    actual: int

    @property
    def key(self) -> str:
        return week_key(self.week)

    @property
    def missing(self) -> int:
        return self.expected - self.actual

    @property
    def completion_rate(self) -> str:
        return completion_rate(self.actual, self.expected)


@dataclass(frozen=True)
class CompletionLedger:
    """Result of one accounting run. Buckets are in ascending week order."""
    buckets: Tuple[WeekBucket, ...]
    total_expected: int
    total_actual: int

    @property
    def total_missing(self) -> int:
        return self.total_expected - self.total_actual

    @property
    def completion_rate(self) -> str:
        return completion_rate(self.total_actual, self.total_expected)

    def newest_first(self, limit: Optional[int] = None) -> Tuple[WeekBucket, ...]:
        ordered = tuple(reversed(self.buckets))
        return ordered if limit is None else ordered[:limit]


def partition_reports(entity_ids: Iterable[str], events: Iterable[ReportEvent]) -> ReportPartition:
    """Split events into those whose entity is in entity_ids and those whose entity is gone."""
    known: Set[str] = set(entity_ids)
    valid = []
    orphaned = []
    for event in events:
        if event.entity_id in known:
            valid.append(event)
        else:
            orphaned.append(event)
    return ReportPartition(valid=tuple(valid), orphaned=tuple(orphaned))


def accumulate(
    entities: Iterable[TrackedEntity],
    valid_events: Iterable[ReportEvent],
    reference: datetime,
    policy: ReportCountPolicy = ReportCountPolicy.RAW,
) -> CompletionLedger:
    """
    Build per-week expected/actual counts.

    Each entity expects one report for every week from its creation week through
    the reference week. A report counts toward the bucket of its normalized week;
    reports whose week has no bucket (e.g. dated before any creation week) are not
    counted anywhere.
    """
    expected: Dict[datetime, int] = {}
    for entity in entities:
        for week in expected_weeks(entity.created_at, reference):
            expected[week] = expected.get(week, 0) + 1

    actual: Dict[datetime, int] = {}
    counted: Set[Tuple[str, datetime]] = set()
    for event in valid_events:
        week = week_start(event.report_week)
        if week not in expected:
            continue
        if policy == ReportCountPolicy.DISTINCT:
            slot = (event.entity_id, week)
            if slot in counted:
                continue
            counted.add(slot)
        actual[week] = actual.get(week, 0) + 1

    buckets = tuple(
        WeekBucket(week=week, expected=expected[week], actual=actual.get(week, 0))
        for week in sorted(expected)
    )
    return CompletionLedger(
        buckets=buckets,
        total_expected=sum(expected.values()),
        total_actual=sum(actual.values()),
    )
