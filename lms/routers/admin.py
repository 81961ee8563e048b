import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.core.database import get_db
from lms.core.dependencies import get_current_admin
from lms.schemas.auth import SessionIdentity
from lms.services.reconciliation import CounterReconciler, ReconciliationReport

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
)


@router.post("/reconcile-counters", response_model=ReconciliationReport)
def reconcile_counters(
    admin: Annotated[SessionIdentity, Depends(get_current_admin)],
    db: Session = Depends(get_db),
):
    """
    Recompute students_count and courses_count from Active enrollments now,
    instead of waiting for the scheduled run.
    """
    logger.info(f"Manual counter reconciliation triggered by admin {admin.user_id}")
    return CounterReconciler(db).reconcile()
