from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from decimal import Decimal

_DB_DIR = tempfile.mkdtemp(prefix="bidflow-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'bidflow.db')}"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient

from bidflow.db.models import Bill, Case, Company, SubContractor, User
from bidflow.db.session import Base, SessionLocal, engine
from bidflow.main import app
from bidflow.utils.case_state import CaseStatus
from bidflow.utils.permissions import Caller
from bidflow.utils.security import create_access_token


@dataclass
class Party:
    user: User

    @property
    def caller(self) -> Caller:
        return Caller.from_user(self.user)

    @property
    def headers(self) -> dict[str, str]:
        token = create_access_token({"sub": str(self.user.id)})
        return {"Authorization": f"Bearer {token}"}


@dataclass
class Parties:
    epc: Party
    subcontractor: Party
    outsider_epc: Party
    outsider_subcontractor: Party
    admin: Party
    company: Company
    subcontractor_profile: SubContractor


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _user(db, email: str, role: str, company: Company | None = None) -> User:
    user = User(email=email, name=email.split("@")[0], password_hash="x", role=role, company=company)
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def parties(db) -> Parties:
    company = Company(name="Acme Infra")
    rival = Company(name="Rival Builders")
    db.add_all([company, rival])
    db.flush()

    epc = _user(db, "buyer@acme.test", "epc", company)
    outsider_epc = _user(db, "buyer@rival.test", "epc", rival)
    sub = _user(db, "owner@steelworks.test", "subcontractor")
    outsider_sub = _user(db, "owner@other.test", "subcontractor")
    admin = _user(db, "ops@bidflow.test", "admin")

    profile = SubContractor(company_name="Steelworks Pvt", owner_name="Owner", user_id=sub.id)
    db.add_all([profile, SubContractor(company_name="Other Co", user_id=outsider_sub.id)])
    db.commit()

    return Parties(
        epc=Party(epc),
        subcontractor=Party(sub),
        outsider_epc=Party(outsider_epc),
        outsider_subcontractor=Party(outsider_sub),
        admin=Party(admin),
        company=company,
        subcontractor_profile=profile,
    )


@pytest.fixture
def make_case(db, parties: Parties):
    def _make(status: str = CaseStatus.EPC_VERIFIED) -> Case:
        bill = Bill(
            bill_number="BILL-001",
            amount=Decimal("750000"),
            subcontractor_id=parties.subcontractor_profile.id,
            epc_id=parties.company.id,
        )
        db.add(bill)
        db.flush()
        case = Case(
            bill_id=bill.id,
            subcontractor_id=parties.subcontractor_profile.id,
            epc_id=parties.company.id,
            status=status,
        )
        db.add(case)
        db.commit()
        db.refresh(case)
        return case

    return _make
