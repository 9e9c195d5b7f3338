"""
Bid Service - place, negotiate, respond to and lock funding bids.

Every mutating operation is a single read-modify-write of one bid inside one
transaction. Bid and Case rows are versioned (see ``version_id_col`` on the
models), so a request that read a bid before a competing request committed
fails its UPDATE and is reported as INVALID_STATE_TRANSITION.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from bidflow.db.models import Bid, Case, Negotiation, StatusHistory, SubContractor
from bidflow.services import notification_service
from bidflow.utils import case_state
from bidflow.utils.bid_state import (
    BidAction, BidStateMachine, BidStatus, BidWorkflowError, ErrorCode,
    current_terms, require_positive_amount, require_positive_days, resolve_counter_duration,
)
from bidflow.utils.case_state import CaseStatus
from bidflow.utils.permissions import (
    Caller, Role, is_admin, require_case_buyer, require_case_party,
    require_case_subcontractor,
)

logger = logging.getLogger(__name__)

DECISIONS = {"accept": BidAction.ACCEPT, "reject": BidAction.REJECT}


def record_status(db: Session, entity_type: str, entity_id: UUID, status: str,
                  changed_by_id: Optional[UUID], notes: Optional[str] = None):
    db.add(StatusHistory(
        entity_type=entity_type,
        entity_id=entity_id,
        status=status,
        changed_by_id=changed_by_id,
        notes=notes,
    ))


def _set_case_status(db: Session, case: Case, status: str, caller: Caller, notes: Optional[str] = None):
    if case.status == status:
        return
    case.status = status
    case.updated_at = datetime.utcnow()
    record_status(db, "case", case.id, status, caller.id, notes)


def load_bid(db: Session, bid_id: UUID) -> Bid:
    bid = db.query(Bid).filter(Bid.id == bid_id).first()
    if not bid:
        raise BidWorkflowError(ErrorCode.NOT_FOUND, "Bid not found")
    return bid


def load_case(db: Session, case_id: UUID) -> Case:
    case = db.query(Case).filter(Case.id == case_id).first()
    if not case:
        raise BidWorkflowError(ErrorCode.NOT_FOUND, "Case not found")
    return case


def commit_transition(db: Session, action: str, bid_id: Optional[UUID] = None):
    """Commit the transition or report the lost race as an invalid transition."""
    try:
        db.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.rollback()
        logger.warning(f"Concurrent {action} on bid {bid_id} lost the race: {exc}")
        raise BidWorkflowError(
            ErrorCode.INVALID_STATE_TRANSITION,
            "Bid was changed by another request. Refresh and try again.",
        )


def place_bid(db: Session, caller: Caller, case_id: UUID, bid_amount, funding_duration_days) -> Bid:
    """
    EPC places a funding bid on a case it has verified.

    Raises:
        BidWorkflowError: NOT_FOUND, NOT_AUTHORIZED, CASE_NOT_ELIGIBLE or INVALID_AMOUNT
    """
    case = load_case(db, case_id)
    require_case_buyer(caller, case)

    if not case_state.can_receive_bids(case.status):
        raise BidWorkflowError(
            ErrorCode.CASE_NOT_ELIGIBLE,
            f"Case is '{case.status}'. Bids can only be placed on {CaseStatus.EPC_VERIFIED} cases.",
        )

    amount = require_positive_amount(bid_amount, "bid amount")
    duration = require_positive_days(funding_duration_days, "funding duration")

    bid = Bid(
        case_id=case.id,
        epc_id=case.epc_id,
        placed_by_id=caller.id,
        bid_amount=amount,
        funding_duration_days=duration,
        status=BidStatus.SUBMITTED,
    )
    db.add(bid)
    db.flush()
    record_status(db, "bid", bid.id, BidStatus.SUBMITTED, caller.id)
    _set_case_status(db, case, CaseStatus.BID_PLACED, caller)
    commit_transition(db, "place", bid.id)
    db.refresh(bid)

    logger.info(f"Bid {bid.id} placed on case {case.case_number}: {amount} for {duration} days")
    notification_service.notify_bid_placed(db, case, bid)
    return bid


def negotiate(db: Session, caller: Caller, bid_id: UUID, counter_amount,
              counter_duration: Optional[int] = None, message: Optional[str] = None) -> Bid:
    """
    Append a counter-offer from either party and move the bid into negotiation.

    An omitted counter duration keeps the duration currently on the table.
    """
    bid = load_bid(db, bid_id)
    case = bid.case
    require_case_party(caller, case)

    amount = require_positive_amount(counter_amount, "counter amount")
    duration = resolve_counter_duration(bid, counter_duration)
    next_status = BidStateMachine.next_status(bid.status, BidAction.NEGOTIATE)
    if case_state.is_locked(case.status):
        raise BidWorkflowError(ErrorCode.INVALID_STATE_TRANSITION, "Case is already commercially locked")

    proposed_by_role = Role.EPC if caller.role == Role.EPC else Role.SUBCONTRACTOR
    previous_status = bid.status

    negotiation = Negotiation(
        sequence=len(bid.negotiations) + 1,
        proposed_by_id=caller.id,
        proposed_by_role=proposed_by_role,
        counter_amount=amount,
        counter_duration=duration,
        message=message,
        created_at=datetime.utcnow(),
    )
    bid.negotiations.append(negotiation)
    bid.status = next_status
    # Touch the row even when the status is unchanged so the version check runs
    bid.updated_at = datetime.utcnow()
    if previous_status != next_status:
        record_status(db, "bid", bid.id, next_status, caller.id)
    _set_case_status(db, case, CaseStatus.NEGOTIATION_IN_PROGRESS, caller)
    commit_transition(db, BidAction.NEGOTIATE, bid.id)
    db.refresh(bid)

    logger.info(
        f"Bid {bid.id} countered by {proposed_by_role} (#{negotiation.sequence}): "
        f"{amount} for {duration} days"
    )
    notification_service.notify_bid_countered(db, case, bid, proposed_by_role, caller.id)
    return bid


def respond(db: Session, caller: Caller, bid_id: UUID, decision: str) -> Bid:
    """Sub-contractor accepts or rejects the bid as it currently stands."""
    action = DECISIONS.get(decision)
    if action is None:
        raise BidWorkflowError(
            ErrorCode.INVALID_STATE_TRANSITION,
            f"Unknown decision '{decision}'. Must be accept or reject.",
        )

    bid = load_bid(db, bid_id)
    case = bid.case
    require_case_subcontractor(caller, case)
    next_status = BidStateMachine.next_status(bid.status, action)

    bid.status = next_status
    bid.updated_at = datetime.utcnow()
    record_status(db, "bid", bid.id, next_status, caller.id)

    if action == BidAction.REJECT and not case_state.is_locked(case.status):
        still_open = [b for b in case.bids if b.id != bid.id and BidStateMachine.is_open(b.status)]
        if not still_open:
            # Reset so the buyer can bid again
            _set_case_status(db, case, CaseStatus.EPC_VERIFIED, caller, notes="Bid rejected")

    commit_transition(db, action, bid.id)
    db.refresh(bid)

    logger.info(f"Bid {bid.id} {next_status.lower()} by sub-contractor {caller.id}")
    notification_service.notify_bid_response(db, case, bid, accepted=action == BidAction.ACCEPT)
    return bid


def lock_bid(db: Session, caller: Caller, bid_id: UUID) -> Bid:
    """
    Lock the commercial terms of a bid.

    The locked terms are the latest counter-offer, or the original bid when no
    counter-offer was made. Other open bids on the same case are closed.
    """
    bid = load_bid(db, bid_id)
    case = bid.case
    require_case_party(caller, case)
    next_status = BidStateMachine.next_status(bid.status, BidAction.LOCK)
    if case_state.is_locked(case.status):
        raise BidWorkflowError(ErrorCode.INVALID_STATE_TRANSITION, "Case is already commercially locked")

    final_amount, final_duration = current_terms(bid)
    now = datetime.utcnow()

    bid.status = next_status
    bid.final_amount = final_amount
    bid.final_duration = final_duration
    bid.locked_at = now
    bid.updated_at = now
    record_status(db, "bid", bid.id, next_status, caller.id)

    case.locked_at = now
    case.commercial_snapshot = {
        "bid_id": str(bid.id),
        "final_amount": str(final_amount),
        "final_duration": final_duration,
        "locked_at": now.isoformat(),
    }
    _set_case_status(db, case, CaseStatus.COMMERCIAL_LOCKED, caller)

    superseded = []
    for sibling in case.bids:
        if sibling.id == bid.id or not BidStateMachine.is_open(sibling.status):
            continue
        sibling.status = BidStatus.REJECTED
        sibling.updated_at = now
        record_status(db, "bid", sibling.id, BidStatus.REJECTED, caller.id, notes=f"Superseded by bid {bid.id}")
        superseded.append(sibling)

    commit_transition(db, BidAction.LOCK, bid.id)
    db.refresh(bid)

    logger.info(
        f"Bid {bid.id} commercially locked on case {case.case_number}: "
        f"{final_amount} for {final_duration} days ({len(superseded)} sibling bid(s) closed)"
    )
    notification_service.notify_bid_locked(db, case, bid, caller.id)
    for sibling in superseded:
        notification_service.notify_bid_superseded(db, case, sibling)
    return bid


def get_bid(db: Session, caller: Caller, bid_id: UUID) -> Bid:
    bid = load_bid(db, bid_id)
    if not is_admin(caller):
        require_case_party(caller, bid.case)
    return bid


def list_bids_for_case(db: Session, caller: Caller, case_id: UUID):
    case = load_case(db, case_id)
    if not is_admin(caller):
        require_case_party(caller, case)
    return db.query(Bid).filter(Bid.case_id == case.id).order_by(Bid.created_at.desc()).all()


def my_bids_query(db: Session, caller: Caller):
    """Bids placed by the caller's company, or bids on the caller's cases."""
    query = db.query(Bid)
    if caller.role == Role.EPC:
        query = query.filter(Bid.epc_id == caller.company_id)
    elif caller.role == Role.SUBCONTRACTOR:
        query = (
            query.join(Case, Bid.case_id == Case.id)
            .join(SubContractor, Case.subcontractor_id == SubContractor.id)
            .filter(SubContractor.user_id == caller.id)
        )
    elif not is_admin(caller):
        raise BidWorkflowError(ErrorCode.NOT_AUTHORIZED, f"Role '{caller.role}' has no bids")
    return query.order_by(Bid.created_at.desc())

