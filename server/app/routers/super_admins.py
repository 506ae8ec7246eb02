from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.auth.deps import require_super_admin
from app.core.db import get_db
from app.schemas.user_admin import SuperAdminAddRequest, SuperAdminOut, SuperAdminResultOut
from app.services.access import CurrentUser
from app.services.roles import (
    STATUS_USER_NOT_FOUND,
    add_super_admin_by_email,
    list_super_admins,
    remove_super_admin,
)

router = APIRouter(prefix="/super-admins", tags=["super-admins"])


@router.get("", response_model=list[SuperAdminOut])
def get_super_admins(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_super_admin),
) -> list[SuperAdminOut]:
    return [SuperAdminOut(**row) for row in list_super_admins(db)]


@router.post("", response_model=SuperAdminResultOut)
def add_super_admin(
    payload: SuperAdminAddRequest,
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_super_admin),
) -> SuperAdminResultOut:
    result = add_super_admin_by_email(db, payload.email)
    if result.status == STATUS_USER_NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    return SuperAdminResultOut(**result.as_dict())


@router.delete("/{user_id}", response_model=SuperAdminResultOut)
def delete_super_admin(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_super_admin),
) -> SuperAdminResultOut:
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot remove your own super admin rights")
    result = remove_super_admin(db, user_id)
    if result.status == STATUS_USER_NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
    return SuperAdminResultOut(**result.as_dict())
