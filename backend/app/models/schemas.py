"""
Follow-Up Unit - API Schemas
Request/response models for persons, weekly reports and statistics.
Responses are serialized with camelCase keys.
"""
import re
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ..services.statistics.weeks import to_naive_utc

PHONE_PATTERN = re.compile(r'^\d{10,}$')


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, emits camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# PERSONS
# =============================================================================

class PersonRequest(CamelModel):
    """Create/update payload for a person."""
    name: str
    phone: str
    address: str
    inviter: str
    notes: Optional[str] = ""

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError('Name must be at least 2 characters long.')
        return v

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        v = v.strip()
        if not PHONE_PATTERN.match(v):
            raise ValueError('Phone number must be at least 10 digits.')
        return v

    @field_validator('address', 'inviter')
    @classmethod
    def validate_required_text(cls, v, info):
        v = v.strip()
        if not v:
            raise ValueError(f'{info.field_name.capitalize()} is required.')
        return v

    @field_validator('notes')
    @classmethod
    def default_notes(cls, v):
        return v or ""


class PersonResponse(CamelModel):
    id: str
    name: str
    phone: str
    address: str
    inviter: str
    notes: Optional[str] = ""
    created_by: str
    created_by_username: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PersonListResponse(CamelModel):
    data: List[PersonResponse]
    pagination: Pagination


class MessageResponse(CamelModel):
    message: str


# =============================================================================
# WEEKLY REPORTS
# =============================================================================

class WeeklyReportRequest(CamelModel):
    """Create/update payload for a weekly report. The person comes from the URL."""
    contacted: bool
    response: str
    week_of: datetime

    @field_validator('response')
    @classmethod
    def validate_response(cls, v):
        if not v.strip():
            raise ValueError('Response is required.')
        return v

    @field_validator('week_of')
    @classmethod
    def validate_week_of(cls, v):
        v = to_naive_utc(v)
        if v > to_naive_utc(datetime.now(timezone.utc)):
            raise ValueError('Report week cannot be in the future.')
        return v


class WeeklyReportResponse(CamelModel):
    id: str
    person_id: str
    contacted: bool
    response: str
    week_of: datetime
    reported_by: str
    person_name: Optional[str] = None
    person_phone: Optional[str] = None
    reported_by_username: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PersonReportsResponse(CamelModel):
    person_name: str
    reports: List[WeeklyReportResponse]
    pagination: Pagination


class ReportListResponse(CamelModel):
    data: List[WeeklyReportResponse]
    pagination: Pagination


# =============================================================================
# BULK UPLOAD
# =============================================================================

class BulkCreateRequest(CamelModel):
    contacts: List[dict] = []
    user_ids: List[str] = []


class BulkFailure(CamelModel):
    contact: dict
    error: str


class BulkResults(CamelModel):
    success: List[PersonResponse]
    failed: List[BulkFailure]


class BulkDistribution(CamelModel):
    user_id: str
    username: str
    contact_count: int


class BulkCreateResponse(CamelModel):
    message: str
    results: BulkResults
    distribution: List[BulkDistribution]


# =============================================================================
# USERS & STATISTICS
# =============================================================================

class UserSummary(CamelModel):
    id: str
    username: str
    role: Optional[str] = None


class WeekStatResponse(CamelModel):
    week: str
    expected: int
    actual: int
    missing: int
    completion_rate: str


class RecentReportResponse(CamelModel):
    report_id: str
    person_id: str
    person_name: str
    week_of: datetime
    contacted: bool
    created_at: datetime
    reported_by: Optional[str] = None


class StatisticsTotalsResponse(CamelModel):
    total_contacts: int
    total_reports: int
    total_expected_reports: int
    total_actual_reports: int
    total_missing_reports: int
    report_completion_rate: str
    weeks_tracked: int


class GlobalTotalsResponse(StatisticsTotalsResponse):
    total_users: int
    active_users: int


class AccountBreakdownResponse(CamelModel):
    user_id: str
    username: str
    total_contacts: int
    expected_reports: int
    actual_reports: int
    missing_reports: int
    completion_rate: str


class AccountStatisticsResponse(CamelModel):
    user: UserSummary
    statistics: StatisticsTotalsResponse
    week_stats: List[WeekStatResponse]
    recent_reports: List[RecentReportResponse]
    orphaned_reports: int = 0
    orphan_warning: Optional[str] = None


class GlobalStatisticsResponse(CamelModel):
    statistics: GlobalTotalsResponse
    week_stats: List[WeekStatResponse]
    user_report_stats: List[AccountBreakdownResponse]
    recent_reports: List[RecentReportResponse]
    orphaned_reports: int = 0
    orphan_warning: Optional[str] = None
