from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.deps import require_admin
from app.core.db import get_db
from app.schemas.dashboard import DashboardMetricsOut
from app.services.access import CurrentUser
from app.services.dashboard import collect_metrics

router = APIRouter(prefix="/admin/dashboard", tags=["dashboard"])


@router.get("/metrics", response_model=DashboardMetricsOut)
def get_metrics(
    db: Session = Depends(get_db),
    _: CurrentUser = Depends(require_admin),
) -> DashboardMetricsOut:
    return DashboardMetricsOut.model_validate(collect_metrics(db))
