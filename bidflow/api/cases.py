from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from bidflow.db.session import get_db
from bidflow.schemas.case import CaseOut, CaseReview
from bidflow.core.deps import get_caller
from bidflow.services import case_service
from bidflow.utils.case_state import ALL_CASE_STATUSES
from bidflow.utils.pagination import PaginatedResponse, PaginationParams, paginate
from bidflow.utils.permissions import Caller

router = APIRouter(prefix="/cases", tags=["cases"])


@router.get("", response_model=PaginatedResponse[CaseOut])
def list_cases(
    status: Optional[str] = Query(None, description="Filter by case status"),
    pagination: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """
    List cases visible to the caller with pagination.
    EPC users see their company's cases, sub-contractors see their own.
    """
    if status and status not in ALL_CASE_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status '{status}'")

    query = case_service.cases_query(db, caller, status)
    return paginate(query, pagination)


@router.get("/{case_id}", response_model=CaseOut)
def get_case(
    case_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return case_service.get_case(db, caller, case_id)


@router.post("/{case_id}/review", response_model=CaseOut)
def review_case(
    case_id: UUID,
    review: CaseReview,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """EPC approves (EPC_VERIFIED) or rejects (EPC_REJECTED) a case awaiting company review"""
    return case_service.review_case(db, caller, case_id, review.decision, review.notes)
