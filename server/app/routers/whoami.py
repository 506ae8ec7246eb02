from fastapi import APIRouter, Depends

from app.auth.deps import get_current_user
from app.schemas.auth import WhoAmIResponse
from app.services.access import CurrentUser

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/whoami", response_model=WhoAmIResponse)
def whoami(user: CurrentUser = Depends(get_current_user)) -> WhoAmIResponse:
    member = user.profile.member if user.profile else None
    return WhoAmIResponse(
        id=user.id,
        user=user.email,
        full_name=user.full_name,
        roles=sorted(user.effective_roles),
        is_admin=user.is_admin,
        is_super_user=user.is_super_user,
        member_id=member.id if member else None,
    )
