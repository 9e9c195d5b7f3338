from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from bidflow.db.session import get_db
from bidflow.schemas.notification import NotificationOut, NotificationMarkRead
from bidflow.core.deps import get_caller
from bidflow.services import notification_service
from bidflow.utils.pagination import PaginatedResponse, PaginationParams, paginate
from bidflow.utils.permissions import Caller

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=PaginatedResponse[NotificationOut])
def list_notifications(
    unread_only: bool = False,
    case_id: Optional[UUID] = Query(None, description="Only events about this case"),
    bid_id: Optional[UUID] = Query(None, description="Only events about this bid"),
    pagination: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """
    The caller's inbox, newest first.
    Pass bid_id to read one negotiation thread, case_id for everything on a case.
    """
    query = notification_service.inbox_query(db, caller.id, unread_only, case_id, bid_id)
    return paginate(query, pagination)


@router.get("/unread/count")
def get_unread_count(
    case_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    return {"unread_count": notification_service.unread_count(db, caller.id, case_id)}


@router.post("/mark-read")
def mark_notifications_read(
    payload: NotificationMarkRead,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Mark the given notifications read. Ids belonging to other users are ignored."""
    count = notification_service.mark_read(db, caller.id, notification_ids=payload.notification_ids)
    return {"count": count}


@router.post("/mark-all-read")
def mark_all_notifications_read(
    case_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_caller),
):
    """Clear the whole inbox, or just one case's thread when case_id is given"""
    count = notification_service.mark_read(db, caller.id, case_id=case_id)
    return {"count": count}
