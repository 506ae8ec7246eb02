from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.auth.deps import require_admin, require_super_admin
from app.core.baas import AuthGateway, get_auth_gateway
from app.core.config import settings
from app.core.db import get_db
from app.schemas.member import MemberOut
from app.schemas.sync import (
    BulkSyncOut,
    ConsolidationOut,
    MemberConflictOut,
    ReconcileOut,
    SyncEmailRequest,
    SyncErrorOut,
    SyncResultOut,
    SyncStatusOut,
    ValidationFailureOut,
)
from app.services.access import CurrentUser
from app.services.reconciliation import (
    BulkSyncResult,
    ConsolidationReport,
    SyncResult,
    consolidate_profile_fields,
    manual_sync_profile,
    reconcile_all,
    sync_profiles_to_members,
    sync_specific_user,
    sync_status,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/sync", tags=["sync"])


def serialize_sync_result(result: SyncResult) -> SyncResultOut:
    return SyncResultOut(
        success=result.success,
        message=result.message,
        existing=result.existing,
        member=MemberOut.model_validate(result.member) if result.member is not None else None,
    )


def serialize_bulk_result(result: BulkSyncResult) -> BulkSyncOut:
    return BulkSyncOut(
        success=result.success,
        message=result.message,
        added=result.added,
        errors=[SyncErrorOut(email=item.email, error=item.error) for item in result.errors],
        validation_errors=[ValidationFailureOut(email=item.email, errors=item.errors) for item in result.validation_errors],
        refresh_needed=result.refresh_needed,
    )


def serialize_consolidation(report: ConsolidationReport) -> ConsolidationOut:
    return ConsolidationOut(
        updated=report.updated,
        conflicts=[
            MemberConflictOut(member_id=item.member_id, email=item.email, conflicts=item.conflicts)
            for item in report.conflicts
        ],
    )


@router.get("/status", response_model=SyncStatusOut)
def get_sync_status(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> SyncStatusOut:
    return SyncStatusOut(**sync_status(db))


@router.post("/profiles", response_model=BulkSyncOut)
def sync_all_profiles(
    batch_size: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_admin),
) -> BulkSyncOut:
    result = sync_profiles_to_members(db, batch_size=batch_size or settings.SYNC_BATCH_SIZE)
    logger.info("bulk profile sync", extra={"actor": current_user.email, "added": result.added})
    return serialize_bulk_result(result)


@router.post("/email", response_model=SyncResultOut)
def sync_by_email(
    payload: SyncEmailRequest,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> SyncResultOut:
    result = sync_specific_user(db, payload.email)
    if not result.success and result.message.startswith("No profile found"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    return serialize_sync_result(result)


@router.post("/profiles/{profile_id}", response_model=SyncResultOut)
def sync_profile(
    profile_id: str,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> SyncResultOut:
    result = manual_sync_profile(db, profile_id)
    if not result.success and result.message == "Profile not found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    return serialize_sync_result(result)


@router.post("/consolidate", response_model=ConsolidationOut)
def consolidate(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_super_admin),
) -> ConsolidationOut:
    return serialize_consolidation(consolidate_profile_fields(db))


@router.post("/reconcile", response_model=ReconcileOut)
def reconcile(
    include_auth_users: bool = Query(default=True),
    db: Session = Depends(get_db),
    gateway: AuthGateway = Depends(get_auth_gateway),
    current_user: CurrentUser = Depends(require_super_admin),
) -> ReconcileOut:
    auth_users = gateway.list_users() if include_auth_users else None
    report = reconcile_all(db, auth_users=auth_users, batch_size=settings.SYNC_BATCH_SIZE)
    logger.info(
        "full reconciliation",
        extra={
            "actor": current_user.email,
            "profiles_created": report.profiles_created,
            "members_linked": report.members_linked,
        },
    )
    return ReconcileOut(
        success=report.success,
        profiles_created=report.profiles_created,
        members_linked=report.members_linked,
        sync=serialize_bulk_result(report.sync) if report.sync else None,
        consolidation=serialize_consolidation(report.consolidation) if report.consolidation else None,
        errors=report.errors,
    )
