"""
Role-based access control utilities
"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from bidflow.db.models import User, Case
from bidflow.utils.bid_state import BidWorkflowError, ErrorCode


class Role:
    EPC = "epc"
    SUBCONTRACTOR = "subcontractor"
    ADMIN = "admin"


@dataclass(frozen=True)
class Caller:
    """Identity of whoever issued the current request."""
    id: UUID
    role: str
    company_id: Optional[UUID] = None

    @classmethod
    def from_user(cls, user: User) -> "Caller":
        return cls(id=user.id, role=user.role, company_id=user.company_id)


def is_admin(caller: Caller) -> bool:
    return caller.role == Role.ADMIN


def is_case_buyer(caller: Caller, case: Case) -> bool:
    """EPC users act for the buyer company that owns the case"""
    return caller.role == Role.EPC and caller.company_id is not None and caller.company_id == case.epc_id


def is_case_subcontractor(caller: Caller, case: Case) -> bool:
    if caller.role != Role.SUBCONTRACTOR:
        return False
    subcontractor = case.subcontractor
    return subcontractor is not None and subcontractor.user_id == caller.id


def is_case_party(caller: Caller, case: Case) -> bool:
    return is_case_buyer(caller, case) or is_case_subcontractor(caller, case)


def can_view_case(caller: Caller, case: Case) -> bool:
    return is_admin(caller) or is_case_party(caller, case)


def require_case_buyer(caller: Caller, case: Case):
    if not is_case_buyer(caller, case):
        raise BidWorkflowError(ErrorCode.NOT_AUTHORIZED, "Only the buyer company on this case can do that")


def require_case_subcontractor(caller: Caller, case: Case):
    if not is_case_subcontractor(caller, case):
        raise BidWorkflowError(ErrorCode.NOT_AUTHORIZED, "Only the sub-contractor on this case can do that")


def require_case_party(caller: Caller, case: Case):
    if not is_case_party(caller, case):
        raise BidWorkflowError(ErrorCode.NOT_AUTHORIZED, "Caller is not a party to this case")
