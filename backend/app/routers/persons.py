"""
Follow-Up Unit - Persons Router
Tracked persons and their weekly follow-up reports.

Ownership rules:
- Users see and edit only the persons they registered; admins see all.
- Reports can only be filed by the person's owner.
- Deleting a person deletes every report filed against it.
"""
from dataclasses import asdict
from math import ceil
from typing import Dict, Optional, Tuple
from uuid import UUID, uuid4
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Query as SAQuery, Session

from .. import config
from ..auth import get_current_user, is_admin
from ..database import get_db
from ..models.db_models import UserDB, PersonDB, WeeklyReportDB
from ..models.schemas import (
    AccountStatisticsResponse,
    MessageResponse,
    Pagination,
    PersonListResponse,
    PersonReportsResponse,
    PersonRequest,
    PersonResponse,
    WeeklyReportRequest,
    WeeklyReportResponse,
)
from ..services.hard_delete_service import HardDeleteService
from ..services.statistics import ReportCountPolicy, StatisticsAggregator, StatisticsStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/persons", tags=["persons"])

MAX_PAGE_SIZE = 100

PERSON_SORT_FIELDS = {
    "createdAt": PersonDB.created_at,
    "updatedAt": PersonDB.updated_at,
    "name": PersonDB.name,
}

REPORT_SORT_FIELDS = {
    "weekOf": WeeklyReportDB.week_of,
    "createdAt": WeeklyReportDB.created_at,
    "contacted": WeeklyReportDB.contacted,
}


# =============================================================================
# HELPERS (shared with the admin router)
# =============================================================================

def ensure_uuid(value: str, label: str) -> str:
    """400 unless value is a UUID string."""
    try:
        UUID(value)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} ID format."
        )
    return value


def sort_clause(fields: dict, sort_by: Optional[str], sort_order: str, default: str):
    column = fields.get(sort_by or default, fields[default])
    return column.asc() if sort_order == "asc" else column.desc()


def paginate(query: SAQuery, page: int, limit: int) -> Tuple[list, Pagination]:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=ceil(total / limit) if total else 0,
    )


def person_response(person: PersonDB, usernames: Optional[Dict[str, str]] = None) -> PersonResponse:
    return PersonResponse(
        id=person.id,
        name=person.name,
        phone=person.phone,
        address=person.address,
        inviter=person.inviter,
        notes=person.notes or "",
        created_by=person.created_by,
        created_by_username=(usernames or {}).get(person.created_by),
        created_at=person.created_at,
        updated_at=person.updated_at,
    )


def report_response(report: WeeklyReportDB, **extra) -> WeeklyReportResponse:
    return WeeklyReportResponse(
        id=report.id,
        person_id=report.person_id,
        contacted=report.contacted,
        response=report.response,
        week_of=report.week_of,
        reported_by=report.reported_by,
        created_at=report.created_at,
        updated_at=report.updated_at,
        **extra,
    )


def usernames_for(db: Session, user_ids) -> Dict[str, str]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    rows = db.query(UserDB.id, UserDB.username).filter(UserDB.id.in_(ids)).all()
    return {row.id: row.username for row in rows}


def statistics_aggregator(db: Session) -> StatisticsAggregator:
    return StatisticsAggregator(
        StatisticsStore(db),
        policy=ReportCountPolicy.from_setting(config.REPORT_COUNT_POLICY),
        week_limit=config.STATS_WEEK_LIMIT,
        recent_limit=config.RECENT_REPORTS_LIMIT,
    )


def _find_accessible_person(db: Session, person_id: str, user: UserDB) -> PersonDB:
    """Admins reach any person; users only their own. 404 otherwise."""
    ensure_uuid(person_id, "Person")
    query = db.query(PersonDB).filter(PersonDB.id == person_id)
    if not is_admin(user):
        query = query.filter(PersonDB.created_by == user.id)
    person = query.first()
    if person is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found or unauthorized."
        )
    return person


def _find_accessible_report(db: Session, person: PersonDB, report_id: str, user: UserDB) -> WeeklyReportDB:
    """Admins reach any report on the person; users only reports they filed."""
    ensure_uuid(report_id, "Report")
    query = db.query(WeeklyReportDB).filter(
        WeeklyReportDB.id == report_id,
        WeeklyReportDB.person_id == person.id,
    )
    if not is_admin(user):
        query = query.filter(WeeklyReportDB.reported_by == user.id)
    report = query.first()
    if report is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found or unauthorized."
        )
    return report


# =============================================================================
# PERSON ENDPOINTS
# =============================================================================

@router.post("", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_person(
    request: PersonRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Register a new person owned by the caller."""
    person = PersonDB(
        id=str(uuid4()),
        name=request.name,
        phone=request.phone,
        address=request.address,
        inviter=request.inviter,
        notes=request.notes,
        created_by=current_user.id,
    )
    db.add(person)
    db.commit()
    db.refresh(person)

    logger.info(f"Person created: {person.id} by user {current_user.id}")
    return person_response(person, {current_user.id: current_user.username})


@router.get("", response_model=PersonListResponse)
async def list_persons(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List persons: all for admins, own for users."""
    query = db.query(PersonDB)
    if not is_admin(current_user):
        query = query.filter(PersonDB.created_by == current_user.id)
    query = query.order_by(sort_clause(PERSON_SORT_FIELDS, sort_by, sort_order, "createdAt"))

    persons, pagination = paginate(query, page, limit)
    usernames = usernames_for(db, (p.created_by for p in persons))

    logger.debug(f"Persons fetched: {len(persons)} of {pagination.total} for user {current_user.id}")
    return PersonListResponse(
        data=[person_response(p, usernames) for p in persons],
        pagination=pagination,
    )


@router.get("/statistics/me", response_model=AccountStatisticsResponse)
async def get_my_statistics(
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Report completion statistics for the caller's own persons."""
    result = statistics_aggregator(db).compute_account_statistics(current_user.id)
    return AccountStatisticsResponse.model_validate(asdict(result))


@router.get("/{person_id}", response_model=PersonResponse)
async def get_person(
    person_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    person = _find_accessible_person(db, person_id, current_user)
    return person_response(person, usernames_for(db, [person.created_by]))


@router.put("/{person_id}", response_model=PersonResponse)
async def update_person(
    person_id: str,
    request: PersonRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Edit a person. Creation time (and so expected weeks) never changes."""
    person = _find_accessible_person(db, person_id, current_user)

    person.name = request.name
    person.phone = request.phone
    person.address = request.address
    person.inviter = request.inviter
    person.notes = request.notes
    db.commit()
    db.refresh(person)

    logger.info(f"Person updated: {person_id} by user {current_user.id}")
    return person_response(person, usernames_for(db, [person.created_by]))


@router.delete("/{person_id}", response_model=MessageResponse)
async def delete_person(
    person_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a person and all of its reports."""
    person = _find_accessible_person(db, person_id, current_user)
    cascade = HardDeleteService(db).delete_person(person)

    logger.info(
        f"Person deleted: {person_id} by user {current_user.id} "
        f"({cascade['weekly_reports']} report(s) removed)"
    )
    return MessageResponse(message="Person and associated reports deleted successfully.")


# =============================================================================
# WEEKLY REPORT ENDPOINTS
# =============================================================================

@router.post("/{person_id}/report", response_model=WeeklyReportResponse, status_code=status.HTTP_201_CREATED)
async def add_weekly_report(
    person_id: str,
    request: WeeklyReportRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """File a weekly report. Only the person's owner may file."""
    ensure_uuid(person_id, "Person")
    person = db.query(PersonDB).filter(
        PersonDB.id == person_id,
        PersonDB.created_by == current_user.id,
    ).first()
    if person is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Person not found or unauthorized."
        )

    report = WeeklyReportDB(
        id=str(uuid4()),
        person_id=person.id,
        contacted=request.contacted,
        response=request.response,
        week_of=request.week_of,
        reported_by=current_user.id,
    )
    db.add(report)
    db.commit()
    db.refresh(report)

    logger.info(f"Weekly report added: {report.id} for person {person_id} by user {current_user.id}")
    return report_response(report, person_name=person.name)


@router.get("/{person_id}/reports", response_model=PersonReportsResponse)
async def list_person_reports(
    person_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Reports for one person, newest week first by default."""
    person = _find_accessible_person(db, person_id, current_user)

    query = db.query(WeeklyReportDB).filter(WeeklyReportDB.person_id == person.id).order_by(
        sort_clause(REPORT_SORT_FIELDS, sort_by, sort_order, "weekOf"),
        WeeklyReportDB.created_at.desc(),
    )
    reports, pagination = paginate(query, page, limit)

    logger.debug(f"Reports fetched for person {person_id}: {len(reports)} of {pagination.total}")
    return PersonReportsResponse(
        person_name=person.name,
        reports=[report_response(r) for r in reports],
        pagination=pagination,
    )


@router.put("/{person_id}/reports/{report_id}", response_model=WeeklyReportResponse)
async def update_weekly_report(
    person_id: str,
    report_id: str,
    request: WeeklyReportRequest,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    person = _find_accessible_person(db, person_id, current_user)
    report = _find_accessible_report(db, person, report_id, current_user)

    report.contacted = request.contacted
    report.response = request.response
    report.week_of = request.week_of
    db.commit()
    db.refresh(report)

    logger.info(f"Weekly report updated: {report_id} for person {person_id} by user {current_user.id}")
    return report_response(report, person_name=person.name)


@router.delete("/{person_id}/reports/{report_id}", response_model=MessageResponse)
async def delete_weekly_report(
    person_id: str,
    report_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    person = _find_accessible_person(db, person_id, current_user)
    report = _find_accessible_report(db, person, report_id, current_user)

    db.delete(report)
    db.commit()

    logger.info(f"Weekly report deleted: {report_id} for person {person_id} by user {current_user.id}")
    return MessageResponse(message="Report deleted successfully.")
