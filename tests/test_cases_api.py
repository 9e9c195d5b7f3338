from __future__ import annotations

from bidflow.db.models import Bill, Case
from bidflow.utils.case_state import CaseStatus


def test_epc_review_makes_case_biddable(client, parties, make_case) -> None:
    case = make_case(CaseStatus.READY_FOR_COMPANY_REVIEW)

    response = client.post(
        f"/cases/{case.id}/review",
        json={"decision": "approve", "notes": "Bill matches site records"},
        headers=parties.epc.headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == CaseStatus.EPC_VERIFIED
    assert body["epc_review_notes"] == "Bill matches site records"

    response = client.post(
        "/bids",
        json={"case_id": str(case.id), "bid_amount": 300000, "funding_duration_days": 60},
        headers=parties.epc.headers,
    )
    assert response.status_code == 201


def test_rejected_review_blocks_bidding(client, parties, make_case) -> None:
    case = make_case(CaseStatus.READY_FOR_COMPANY_REVIEW)
    client.post(f"/cases/{case.id}/review", json={"decision": "reject"}, headers=parties.epc.headers)

    response = client.post(
        "/bids",
        json={"case_id": str(case.id), "bid_amount": 300000, "funding_duration_days": 60},
        headers=parties.epc.headers,
    )

    assert response.status_code == 400
    assert response.json()["code"] == "CASE_NOT_ELIGIBLE"


def test_case_can_only_be_reviewed_once(client, parties, make_case) -> None:
    case = make_case(CaseStatus.READY_FOR_COMPANY_REVIEW)
    client.post(f"/cases/{case.id}/review", json={"decision": "approve"}, headers=parties.epc.headers)

    response = client.post(f"/cases/{case.id}/review", json={"decision": "reject"}, headers=parties.epc.headers)

    assert response.status_code == 409


def test_only_the_buyer_reviews(client, parties, make_case) -> None:
    case = make_case(CaseStatus.READY_FOR_COMPANY_REVIEW)

    for party in (parties.subcontractor, parties.outsider_epc):
        response = client.post(f"/cases/{case.id}/review", json={"decision": "approve"}, headers=party.headers)
        assert response.status_code == 403


def test_case_listing_is_scoped_to_the_caller(client, parties, make_case) -> None:
    verified = make_case()
    make_case(CaseStatus.READY_FOR_COMPANY_REVIEW)

    assert client.get("/cases", headers=parties.epc.headers).json()["total"] == 2
    assert client.get("/cases", headers=parties.subcontractor.headers).json()["total"] == 2
    assert client.get("/cases", headers=parties.outsider_epc.headers).json()["total"] == 0

    filtered = client.get("/cases", params={"status": CaseStatus.EPC_VERIFIED}, headers=parties.epc.headers).json()
    assert [item["id"] for item in filtered["items"]] == [str(verified.id)]

    assert client.get("/cases", params={"status": "BOGUS"}, headers=parties.epc.headers).status_code == 400


def test_case_numbers_are_sequential(parties, make_case) -> None:
    first = make_case()
    second = make_case()

    assert first.case_number == "GRY-000001"
    assert second.case_number == "GRY-000002"


def test_outsider_cannot_view_case(client, parties, make_case) -> None:
    case = make_case()

    assert client.get(f"/cases/{case.id}", headers=parties.outsider_subcontractor.headers).status_code == 403
    assert client.get(f"/cases/{case.id}", headers=parties.admin.headers).status_code == 200


def test_cases_flushed_together_get_distinct_numbers(db, parties, make_case) -> None:
    existing = make_case()
    bill = db.query(Bill).filter(Bill.id == existing.bill_id).one()

    batch = [
        Case(bill_id=bill.id, subcontractor_id=parties.subcontractor_profile.id, epc_id=parties.company.id)
        for _ in range(2)
    ]
    db.add_all(batch)
    db.commit()

    assert sorted(case.case_number for case in batch) == ["GRY-000002", "GRY-000003"]
