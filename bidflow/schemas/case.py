from pydantic import BaseModel
from typing import Optional, Literal, Any
from uuid import UUID
from datetime import datetime


class CaseReview(BaseModel):
    """Schema for the EPC review of a case"""
    decision: Literal["approve", "reject"]
    notes: Optional[str] = None


class CaseOut(BaseModel):
    id: UUID
    case_number: Optional[str]
    bill_id: UUID
    subcontractor_id: UUID
    epc_id: UUID
    status: str
    epc_review_notes: Optional[str] = None
    epc_reviewed_at: Optional[datetime] = None
    commercial_snapshot: Optional[dict[str, Any]] = None
    locked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
