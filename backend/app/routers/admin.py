"""
Follow-Up Unit - Admin Router
Admin-only views over every user's persons and reports, report-completion
statistics, and bulk contact upload.
"""
from dataclasses import asdict
from typing import List, Optional
from uuid import UUID, uuid4
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..models.db_models import UserDB, PersonDB, WeeklyReportDB
from ..models.schemas import (
    AccountStatisticsResponse,
    BulkCreateRequest,
    BulkCreateResponse,
    BulkDistribution,
    BulkFailure,
    BulkResults,
    GlobalStatisticsResponse,
    PersonListResponse,
    PersonRequest,
    ReportListResponse,
    UserSummary,
)
from ..services.statistics import AccountNotFoundError
from .persons import (
    MAX_PAGE_SIZE,
    PERSON_SORT_FIELDS,
    REPORT_SORT_FIELDS,
    ensure_uuid,
    paginate,
    person_response,
    report_response,
    sort_clause,
    statistics_aggregator,
    usernames_for,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/persons", tags=["admin"])


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.get("/reports/all", response_model=ReportListResponse)
async def list_all_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    admin: UserDB = Depends(require_admin)
):
    """Every weekly report in the system with person and reporter names."""
    query = db.query(WeeklyReportDB).order_by(
        sort_clause(REPORT_SORT_FIELDS, sort_by, sort_order, "weekOf")
    )
    reports, pagination = paginate(query, page, limit)

    person_ids = list({r.person_id for r in reports})
    persons = {
        p.id: p for p in db.query(PersonDB).filter(PersonDB.id.in_(person_ids)).all()
    } if person_ids else {}
    usernames = usernames_for(db, (r.reported_by for r in reports))

    logger.debug(f"All reports fetched: {len(reports)} of {pagination.total} by admin {admin.id}")
    return ReportListResponse(
        data=[
            report_response(
                r,
                person_name=persons[r.person_id].name if r.person_id in persons else None,
                person_phone=persons[r.person_id].phone if r.person_id in persons else None,
                reported_by_username=usernames.get(r.reported_by),
            )
            for r in reports
        ],
        pagination=pagination,
    )


@router.get("/admin/users/list", response_model=List[UserSummary])
async def list_users(
    db: Session = Depends(get_db),
    admin: UserDB = Depends(require_admin)
):
    """All user accounts (id, username, role)."""
    users = db.query(UserDB).order_by(UserDB.username).all()
    logger.debug(f"Users fetched: {len(users)} by admin {admin.id}")
    return [UserSummary(id=u.id, username=u.username, role=u.role) for u in users]


@router.get("/admin/users/{user_id}", response_model=PersonListResponse)
async def list_people_by_user(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    admin: UserDB = Depends(require_admin)
):
    """Persons registered by one user."""
    ensure_uuid(user_id, "User")
    query = db.query(PersonDB).filter(PersonDB.created_by == user_id).order_by(
        sort_clause(PERSON_SORT_FIELDS, sort_by, sort_order, "createdAt")
    )
    persons, pagination = paginate(query, page, limit)
    usernames = usernames_for(db, [user_id])

    logger.debug(f"People fetched for user {user_id}: {len(persons)} of {pagination.total} by admin {admin.id}")
    return PersonListResponse(
        data=[person_response(p, usernames) for p in persons],
        pagination=pagination,
    )


@router.get("/admin/users/{user_id}/statistics", response_model=AccountStatisticsResponse)
async def get_user_statistics(
    user_id: str,
    db: Session = Depends(get_db),
    admin: UserDB = Depends(require_admin)
):
    """Report completion statistics for one user."""
    ensure_uuid(user_id, "User")
    try:
        result = statistics_aggregator(db).compute_account_statistics(user_id)
    except AccountNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    logger.debug(
        f"User statistics fetched for {user_id} by admin {admin.id} "
        f"(orphaned reports: {result.orphaned_reports})"
    )
    return AccountStatisticsResponse.model_validate(asdict(result))


@router.get("/admin/statistics", response_model=GlobalStatisticsResponse)
async def get_admin_statistics(
    db: Session = Depends(get_db),
    admin: UserDB = Depends(require_admin)
):
    """System-wide report completion statistics with a per-user breakdown."""
    result = statistics_aggregator(db).compute_global_statistics()
    logger.debug(f"Admin statistics fetched by admin {admin.id}")
    return GlobalStatisticsResponse.model_validate(asdict(result))


@router.post("/bulk", response_model=BulkCreateResponse, status_code=status.HTTP_201_CREATED)
async def bulk_create_persons(
    request: BulkCreateRequest,
    db: Session = Depends(get_db),
    admin: UserDB = Depends(require_admin)
):
    """
    Upload contacts and distribute them evenly across the selected users.

    Contacts are split in order; the first (len(contacts) % len(users)) users
    receive one extra. Invalid contacts are reported and skipped.
    """
    contacts = request.contacts
    user_ids = request.user_ids

    if not contacts:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Contacts must be a non-empty array.")
    if not user_ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one user must be selected.")

    invalid_ids = HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="One or more user IDs are invalid.")
    for user_id in user_ids:
        try:
            UUID(user_id)
        except (ValueError, TypeError):
            raise invalid_ids
    usernames = usernames_for(db, user_ids)
    if len(usernames) != len(user_ids):
        raise invalid_ids

    per_user, remainder = divmod(len(contacts), len(user_ids))
    distribution = []
    success = []
    failed = []

    start = 0
    for index, user_id in enumerate(user_ids):
        count = per_user + (1 if index < remainder else 0)
        user_contacts = contacts[start:start + count]
        start += count
        distribution.append(BulkDistribution(
            user_id=user_id,
            username=usernames.get(user_id, "Unknown"),
            contact_count=len(user_contacts),
        ))

        for contact in user_contacts:
            try:
                data = PersonRequest.model_validate(contact)
            except ValidationError as e:
                failed.append(BulkFailure(contact=contact, error=e.errors()[0]["msg"]))
                continue

            person = PersonDB(
                id=str(uuid4()),
                name=data.name,
                phone=data.phone,
                address=data.address,
                inviter=data.inviter,
                notes=data.notes,
                created_by=user_id,
            )
            db.add(person)
            success.append(person)

    db.commit()
    for person in success:
        db.refresh(person)

    logger.info(
        f"Bulk persons created by admin {admin.id}: {len(success)} succeeded, "
        f"{len(failed)} failed, {len(contacts)} total across {len(user_ids)} user(s)"
    )
    return BulkCreateResponse(
        message=f"Successfully created {len(success)} contacts. {len(failed)} failed.",
        results=BulkResults(
            success=[person_response(p, usernames) for p in success],
            failed=failed,
        ),
        distribution=distribution,
    )
