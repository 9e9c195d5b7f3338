from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Integer, Text, Numeric, JSON, Uuid,
    UniqueConstraint, event, func, insert, select, update,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid

from bidflow.core.config import settings
from bidflow.db.session import Base


class Company(Base):
    """Buyer-side (EPC) company."""
    __tablename__ = "companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    users = relationship("User", back_populates="company")


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=True)
    role = Column(String, nullable=False, default="subcontractor")  # epc, subcontractor, admin
    created_at = Column(DateTime, default=datetime.utcnow)

    company = relationship("Company", back_populates="users")


class SubContractor(Base):
    __tablename__ = "subcontractors"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_name = Column(String, nullable=False)
    owner_name = Column(String, nullable=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User")


class Bill(Base):
    __tablename__ = "bills"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bill_number = Column(String, nullable=False)
    amount = Column(Numeric, nullable=False)
    subcontractor_id = Column(Uuid(as_uuid=True), ForeignKey("subcontractors.id"), nullable=False)
    epc_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    subcontractor = relationship("SubContractor")


class Case(Base):
    __tablename__ = "cases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_number = Column(String, unique=True, nullable=True)
    bill_id = Column(Uuid(as_uuid=True), ForeignKey("bills.id"), nullable=False)
    subcontractor_id = Column(Uuid(as_uuid=True), ForeignKey("subcontractors.id"), nullable=False)
    epc_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=False)

    # See bidflow.utils.case_state.CaseStatus
    status = Column(String, nullable=False, default="READY_FOR_COMPANY_REVIEW")

    # EPC review
    epc_review_notes = Column(Text, nullable=True)
    epc_reviewed_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    epc_reviewed_at = Column(DateTime, nullable=True)

    # Commercial lock snapshot
    commercial_snapshot = Column(JSON, nullable=True)
    locked_at = Column(DateTime, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bill = relationship("Bill")
    subcontractor = relationship("SubContractor")
    epc = relationship("Company")
    bids = relationship("Bid", back_populates="case", order_by="Bid.created_at")

    __mapper_args__ = {"version_id_col": version}


class CaseCounter(Base):
    """Running counter behind human-readable case numbers."""
    __tablename__ = "case_counters"

    name = Column(String, primary_key=True)
    value = Column(Integer, nullable=False, default=0)


def next_case_number(connection) -> int:
    """
    Bump the counter row in the current transaction.
    The UPDATE holds the row lock until commit, so concurrent inserts queue up.
    """
    counters = CaseCounter.__table__
    result = connection.execute(
        update(counters).where(counters.c.name == "case").values(value=counters.c.value + 1)
    )
    if result.rowcount == 0:
        existing = connection.execute(select(func.count()).select_from(Case.__table__)).scalar()
        connection.execute(insert(counters).values(name="case", value=existing + 1))
    return connection.execute(select(counters.c.value).where(counters.c.name == "case")).scalar()


@event.listens_for(Case, "before_insert")
def assign_case_number(mapper, connection, target):
    if not target.case_number:
        target.case_number = f"{settings.CASE_NUMBER_PREFIX}-{next_case_number(connection):06d}"


class Bid(Base):
    __tablename__ = "bids"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=False)
    epc_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=False)
    placed_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    bid_amount = Column(Numeric, nullable=False)
    funding_duration_days = Column(Integer, nullable=False)

    # See bidflow.utils.bid_state.BidStatus
    status = Column(String, nullable=False, default="SUBMITTED")

    # Lock details, only populated once the bid is COMMERCIAL_LOCKED
    final_amount = Column(Numeric, nullable=True)
    final_duration = Column(Integer, nullable=True)
    locked_at = Column(DateTime, nullable=True)

    # Compare-and-set counter, bumped on every UPDATE of the row
    version = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="bids")
    epc = relationship("Company")
    placed_by = relationship("User")
    negotiations = relationship(
        "Negotiation",
        back_populates="bid",
        order_by="Negotiation.sequence",
        cascade="save-update, merge",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def locked_terms(self):
        if self.locked_at is None:
            return None
        return {
            "final_amount": self.final_amount,
            "final_duration": self.final_duration,
            "locked_at": self.locked_at,
        }


class Negotiation(Base):
    """One counter-offer. Rows are only ever inserted."""
    __tablename__ = "negotiations"
    __table_args__ = (UniqueConstraint("bid_id", "sequence", name="uq_negotiation_bid_sequence"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    bid_id = Column(Uuid(as_uuid=True), ForeignKey("bids.id"), nullable=False)
    sequence = Column(Integer, nullable=False)
    proposed_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    proposed_by_role = Column(String, nullable=False)  # epc, subcontractor
    counter_amount = Column(Numeric, nullable=False)
    counter_duration = Column(Integer, nullable=False)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    bid = relationship("Bid", back_populates="negotiations")


class StatusHistory(Base):
    """Audit trail of bid and case status changes"""
    __tablename__ = "status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_type = Column(String, nullable=False)  # bid, case
    entity_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    status = Column(String, nullable=False)
    changed_by_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    notes = Column(Text, nullable=True)
    changed_at = Column(DateTime, default=datetime.utcnow)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    type = Column(String, nullable=False)  # bid_placed, bid_countered, bid_accepted, etc.
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    related_case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=True)
    related_bid_id = Column(Uuid(as_uuid=True), ForeignKey("bids.id"), nullable=True)
    is_read = Column(String, default="false")  # true, false
    created_at = Column(DateTime, default=datetime.utcnow)
    read_at = Column(DateTime, nullable=True)

    user = relationship("User", backref="notifications")
