# bidflow/schemas/bid.py
from pydantic import BaseModel
from typing import Optional, Literal
from uuid import UUID
from datetime import datetime
from decimal import Decimal


class BidCreate(BaseModel):
    case_id: UUID
    # Positivity is checked by the service so it surfaces as INVALID_AMOUNT
    bid_amount: Decimal
    funding_duration_days: int


class CounterOffer(BaseModel):
    """Schema for a counter-offer from either party"""
    amount: Decimal
    duration: Optional[int] = None  # defaults to the duration currently on the table
    message: Optional[str] = None


class BidResponse(BaseModel):
    decision: Literal["accept", "reject"]


class NegotiationOut(BaseModel):
    id: UUID
    sequence: int
    proposed_by_id: UUID
    proposed_by_role: str
    counter_amount: Decimal
    counter_duration: int
    message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LockedTermsOut(BaseModel):
    final_amount: Decimal
    final_duration: int
    locked_at: datetime


class BidOut(BaseModel):
    id: UUID
    case_id: UUID
    epc_id: UUID
    placed_by_id: UUID
    bid_amount: Decimal
    funding_duration_days: int
    status: str
    negotiations: list[NegotiationOut] = []
    locked_terms: Optional[LockedTermsOut] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
