"""
Case statuses and the gating rules the bid workflow depends on
"""


class CaseStatus:
    READY_FOR_COMPANY_REVIEW = "READY_FOR_COMPANY_REVIEW"
    EPC_REJECTED = "EPC_REJECTED"
    EPC_VERIFIED = "EPC_VERIFIED"
    BID_PLACED = "BID_PLACED"
    NEGOTIATION_IN_PROGRESS = "NEGOTIATION_IN_PROGRESS"
    COMMERCIAL_LOCKED = "COMMERCIAL_LOCKED"


ALL_CASE_STATUSES = [
    CaseStatus.READY_FOR_COMPANY_REVIEW,
    CaseStatus.EPC_REJECTED,
    CaseStatus.EPC_VERIFIED,
    CaseStatus.BID_PLACED,
    CaseStatus.NEGOTIATION_IN_PROGRESS,
    CaseStatus.COMMERCIAL_LOCKED,
]


def can_receive_bids(status: str) -> bool:
    return status == CaseStatus.EPC_VERIFIED


def can_be_reviewed(status: str) -> bool:
    return status == CaseStatus.READY_FOR_COMPANY_REVIEW


def is_locked(status: str) -> bool:
    return status == CaseStatus.COMMERCIAL_LOCKED
