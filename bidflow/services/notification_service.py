"""
Notification Service - Create in-app notifications for bid and case events
"""
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional, List
from datetime import datetime
import logging

from bidflow.db.models import Notification, User, Case, Bid

logger = logging.getLogger(__name__)


class NotificationType:
    """Notification type constants"""
    CASE_REVIEWED = "case_reviewed"
    BID_PLACED = "bid_placed"
    BID_COUNTERED = "bid_countered"
    BID_ACCEPTED = "bid_accepted"
    BID_REJECTED = "bid_rejected"
    BID_LOCKED = "bid_locked"
    BID_SUPERSEDED = "bid_superseded"


def create_notification(
    db: Session,
    user_id: UUID,
    notification_type: str,
    title: str,
    message: str,
    related_case_id: Optional[UUID] = None,
    related_bid_id: Optional[UUID] = None,
) -> Notification:
    """
    Create a new notification for a user.

    Args:
        db: Database session
        user_id: ID of user to notify
        notification_type: Type of notification (use NotificationType constants)
        title: Short notification title
        message: Detailed notification message
        related_case_id: Optional case ID for context
        related_bid_id: Optional bid ID for context

    Returns:
        Created Notification object
    """
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        related_case_id=related_case_id,
        related_bid_id=related_bid_id
    )

    db.add(notification)
    db.commit()
    db.refresh(notification)

    logger.info(f"Created {notification_type} notification {notification.id} for user {user_id}")
    return notification


def notify_company_users(
    db: Session,
    company_id: UUID,
    notification_type: str,
    title: str,
    message: str,
    related_case_id: Optional[UUID] = None,
    related_bid_id: Optional[UUID] = None,
    exclude_user_id: Optional[UUID] = None
) -> List[Notification]:
    """Create notifications for all users in a buyer company."""
    users = db.query(User).filter(User.company_id == company_id).all()

    notifications = []
    for user in users:
        if exclude_user_id and user.id == exclude_user_id:
            continue

        notifications.append(create_notification(
            db=db,
            user_id=user.id,
            notification_type=notification_type,
            title=title,
            message=message,
            related_case_id=related_case_id,
            related_bid_id=related_bid_id
        ))

    return notifications


def notify_subcontractor(
    db: Session,
    case: Case,
    notification_type: str,
    title: str,
    message: str,
    related_bid_id: Optional[UUID] = None,
) -> Optional[Notification]:
    """Notify the sub-contractor login attached to a case, if it has one."""
    subcontractor = case.subcontractor
    if not subcontractor or not subcontractor.user_id:
        logger.warning(f"Case {case.case_number} has no sub-contractor login to notify")
        return None
    return create_notification(
        db=db,
        user_id=subcontractor.user_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_case_id=case.id,
        related_bid_id=related_bid_id
    )


def notify_bid_placed(db: Session, case: Case, bid: Bid):
    return notify_subcontractor(
        db=db,
        case=case,
        notification_type=NotificationType.BID_PLACED,
        title="New Bid Received",
        message=(
            f"A bid of {bid.bid_amount} for {bid.funding_duration_days} days "
            f"was placed on case {case.case_number}."
        ),
        related_bid_id=bid.id
    )


def notify_bid_countered(db: Session, case: Case, bid: Bid, proposed_by_role: str, proposed_by_id: UUID):
    """Tell the other side of the table about a counter-offer."""
    latest = bid.negotiations[-1]
    message = (
        f"Counter-offer on case {case.case_number}: "
        f"{latest.counter_amount} for {latest.counter_duration} days."
    )
    if proposed_by_role == "subcontractor":
        return notify_company_users(
            db=db,
            company_id=case.epc_id,
            notification_type=NotificationType.BID_COUNTERED,
            title="Counter-offer Received",
            message=message,
            related_case_id=case.id,
            related_bid_id=bid.id
        )
    return notify_subcontractor(
        db=db,
        case=case,
        notification_type=NotificationType.BID_COUNTERED,
        title="Counter-offer Received",
        message=message,
        related_bid_id=bid.id
    )


def notify_bid_response(db: Session, case: Case, bid: Bid, accepted: bool):
    if accepted:
        notification_type = NotificationType.BID_ACCEPTED
        title = "Bid Accepted"
        message = f"Your bid on case {case.case_number} was accepted and can now be locked."
    else:
        notification_type = NotificationType.BID_REJECTED
        title = "Bid Rejected"
        message = f"Your bid on case {case.case_number} was rejected."
    return notify_company_users(
        db=db,
        company_id=case.epc_id,
        notification_type=notification_type,
        title=title,
        message=message,
        related_case_id=case.id,
        related_bid_id=bid.id
    )


def notify_bid_locked(db: Session, case: Case, bid: Bid, locked_by_id: UUID):
    """Both parties hear about a commercial lock, except whoever locked it."""
    message = (
        f"Commercial terms for case {case.case_number} are locked at "
        f"{bid.final_amount} for {bid.final_duration} days."
    )
    notify_company_users(
        db=db,
        company_id=case.epc_id,
        notification_type=NotificationType.BID_LOCKED,
        title="Commercial Terms Locked",
        message=message,
        related_case_id=case.id,
        related_bid_id=bid.id,
        exclude_user_id=locked_by_id
    )
    if case.subcontractor and case.subcontractor.user_id != locked_by_id:
        notify_subcontractor(
            db=db,
            case=case,
            notification_type=NotificationType.BID_LOCKED,
            title="Commercial Terms Locked",
            message=message,
            related_bid_id=bid.id
        )


def notify_bid_superseded(db: Session, case: Case, bid: Bid):
    return notify_company_users(
        db=db,
        company_id=bid.epc_id,
        notification_type=NotificationType.BID_SUPERSEDED,
        title="Bid Closed",
        message=f"Case {case.case_number} was locked with another bid; your bid is closed.",
        related_case_id=case.id,
        related_bid_id=bid.id
    )


def notify_case_reviewed(db: Session, case: Case):
    return notify_subcontractor(
        db=db,
        case=case,
        notification_type=NotificationType.CASE_REVIEWED,
        title="Case Reviewed",
        message=f"Case {case.case_number} is now {case.status}."
    )


def inbox_query(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    case_id: Optional[UUID] = None,
    bid_id: Optional[UUID] = None,
):
    """A user's notifications, newest first, optionally narrowed to one case or one bid thread."""
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read == "false")
    if case_id:
        query = query.filter(Notification.related_case_id == case_id)
    if bid_id:
        query = query.filter(Notification.related_bid_id == bid_id)
    return query.order_by(Notification.created_at.desc())


def unread_count(db: Session, user_id: UUID, case_id: Optional[UUID] = None) -> int:
    return inbox_query(db, user_id, unread_only=True, case_id=case_id).count()


def mark_read(
    db: Session,
    user_id: UUID,
    notification_ids: Optional[List[UUID]] = None,
    case_id: Optional[UUID] = None,
) -> int:
    """
    Mark the user's unread notifications as read.

    With notification_ids only those rows are touched; with case_id only that
    case's thread. Returns how many rows changed.
    """
    query = inbox_query(db, user_id, unread_only=True, case_id=case_id)
    if notification_ids is not None:
        query = query.filter(Notification.id.in_(notification_ids))

    now = datetime.utcnow()
    notifications = query.all()
    for notification in notifications:
        notification.is_read = "true"
        notification.read_at = now
    db.commit()

    logger.info(f"Marked {len(notifications)} notification(s) read for user {user_id}")
    return len(notifications)
