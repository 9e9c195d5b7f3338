"""
Case Service - case lookup and the EPC review that makes a case biddable
"""
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from bidflow.db.models import Case, SubContractor
from bidflow.services import notification_service
from bidflow.services.bid_service import commit_transition, load_case, record_status
from bidflow.utils import case_state
from bidflow.utils.bid_state import BidWorkflowError, ErrorCode
from bidflow.utils.case_state import CaseStatus
from bidflow.utils.permissions import Caller, Role, can_view_case, is_admin, require_case_buyer

logger = logging.getLogger(__name__)

REVIEW_OUTCOMES = {"approve": CaseStatus.EPC_VERIFIED, "reject": CaseStatus.EPC_REJECTED}


def cases_query(db: Session, caller: Caller, status: Optional[str] = None):
    """Cases visible to the caller, newest first."""
    query = db.query(Case)
    if caller.role == Role.EPC:
        query = query.filter(Case.epc_id == caller.company_id)
    elif caller.role == Role.SUBCONTRACTOR:
        query = query.join(SubContractor, Case.subcontractor_id == SubContractor.id).filter(
            SubContractor.user_id == caller.id
        )
    elif not is_admin(caller):
        raise BidWorkflowError(ErrorCode.NOT_AUTHORIZED, f"Role '{caller.role}' cannot view cases")

    if status:
        query = query.filter(Case.status == status)
    return query.order_by(Case.created_at.desc())


def get_case(db: Session, caller: Caller, case_id: UUID) -> Case:
    case = load_case(db, case_id)
    if not can_view_case(caller, case):
        raise BidWorkflowError(ErrorCode.NOT_AUTHORIZED, "Not authorized to view this case")
    return case


def review_case(db: Session, caller: Caller, case_id: UUID, decision: str, notes: Optional[str] = None) -> Case:
    """EPC approves or rejects a sub-contractor's case."""
    new_status = REVIEW_OUTCOMES.get(decision)
    if new_status is None:
        raise BidWorkflowError(
            ErrorCode.INVALID_STATE_TRANSITION,
            f"Unknown decision '{decision}'. Must be approve or reject.",
        )

    case = load_case(db, case_id)
    require_case_buyer(caller, case)
    if not case_state.can_be_reviewed(case.status):
        raise BidWorkflowError(
            ErrorCode.INVALID_STATE_TRANSITION,
            f"Case is '{case.status}' and is not ready for company review",
        )

    now = datetime.utcnow()
    case.status = new_status
    case.epc_review_notes = notes
    case.epc_reviewed_by_id = caller.id
    case.epc_reviewed_at = now
    case.updated_at = now
    record_status(db, "case", case.id, new_status, caller.id, notes)
    commit_transition(db, "review")
    db.refresh(case)

    logger.info(f"Case {case.case_number} reviewed by {caller.id}: {new_status}")
    notification_service.notify_case_reviewed(db, case)
    return case
