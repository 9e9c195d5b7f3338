from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from bidflow.db.session import get_db
from bidflow.schemas.bid import BidCreate, BidOut, BidResponse, CounterOffer
from bidflow.core.deps import get_caller
from bidflow.services import bid_service
from bidflow.utils.pagination import PaginatedResponse, PaginationParams, paginate
from bidflow.utils.permissions import Caller

router = APIRouter(prefix="/bids", tags=["bids"])


@router.post("", response_model=BidOut, status_code=201)
def place_bid(
    payload: BidCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Place a bid on an EPC_VERIFIED case. Only the buyer company on the case may bid."""
    return bid_service.place_bid(
        db, caller, payload.case_id, payload.bid_amount, payload.funding_duration_days
    )


@router.get("/mine", response_model=PaginatedResponse[BidOut])
def list_my_bids(
    pagination: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """
    EPC users see the bids their company placed.
    Sub-contractors see the bids received on their cases.
    """
    query = bid_service.my_bids_query(db, caller)
    return paginate(query, pagination)


@router.get("/case/{case_id}", response_model=list[BidOut])
def list_bids_for_case(
    case_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return bid_service.list_bids_for_case(db, caller, case_id)


@router.get("/{bid_id}", response_model=BidOut)
def get_bid(
    bid_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Get bid details including the full negotiation history"""
    return bid_service.get_bid(db, caller, bid_id)


@router.post("/{bid_id}/negotiate", response_model=BidOut)
def negotiate_bid(
    bid_id: UUID,
    counter_offer: CounterOffer,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Send a counter-offer. Either party on the case may negotiate."""
    return bid_service.negotiate(
        db, caller, bid_id,
        counter_offer.amount,
        counter_duration=counter_offer.duration,
        message=counter_offer.message,
    )


@router.post("/{bid_id}/respond", response_model=BidOut)
def respond_to_bid(
    bid_id: UUID,
    payload: BidResponse,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Sub-contractor accepts or rejects the bid"""
    return bid_service.respond(db, caller, bid_id, payload.decision)


@router.post("/{bid_id}/lock", response_model=BidOut)
def lock_bid(
    bid_id: UUID,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """
    Lock the commercial agreement.
    The final terms are the latest counter-offer, or the original bid if nobody countered.
    """
    return bid_service.lock_bid(db, caller, bid_id)
