from __future__ import annotations

from bidflow.db.models import SubContractor, User


def test_register_epc_creates_company_and_logs_in(client, db) -> None:
    response = client.post(
        "/auth/register",
        json={
            "email": "finance@buildco.example.com",
            "password": "s3cret-pass",
            "role": "epc",
            "company_name": "BuildCo",
        },
    )
    assert response.status_code == 201
    assert response.json()["role"] == "epc"

    user = db.query(User).filter(User.email == "finance@buildco.example.com").one()
    assert user.company.name == "BuildCo"

    response = client.post("/auth/login", json={"email": "finance@buildco.example.com", "password": "s3cret-pass"})
    assert response.status_code == 200
    assert response.json()["token_type"] == "bearer"


def test_register_subcontractor_creates_profile(client, db) -> None:
    response = client.post(
        "/auth/register",
        json={"email": "owner@tiles.example.com", "password": "pw-12345", "role": "subcontractor", "company_name": "Tiles Ltd"},
    )
    assert response.status_code == 201

    user = db.query(User).filter(User.email == "owner@tiles.example.com").one()
    profile = db.query(SubContractor).filter(SubContractor.user_id == user.id).one()
    assert profile.company_name == "Tiles Ltd"


def test_register_rejects_duplicates_and_unknown_roles(client) -> None:
    payload = {"email": "a@example.com", "password": "pw-12345", "role": "subcontractor"}
    assert client.post("/auth/register", json=payload).status_code == 201
    assert client.post("/auth/register", json=payload).status_code == 400

    payload = {"email": "c@example.com", "password": "pw-12345", "role": "admin"}
    assert client.post("/auth/register", json=payload).status_code == 422


def test_epc_registration_needs_a_company(client) -> None:
    response = client.post("/auth/register", json={"email": "e@example.com", "password": "pw-12345", "role": "epc"})

    assert response.status_code == 400


def test_login_with_wrong_password(client) -> None:
    client.post("/auth/register", json={"email": "g@example.com", "password": "pw-12345", "role": "subcontractor"})

    response = client.post("/auth/login", json={"email": "g@example.com", "password": "wrong"})

    assert response.status_code == 401


def test_bid_events_reach_the_counterparty_inbox(client, parties, make_case) -> None:
    case = make_case()
    client.post(
        "/bids",
        json={"case_id": str(case.id), "bid_amount": 500000, "funding_duration_days": 90},
        headers=parties.epc.headers,
    )

    inbox = client.get("/notifications", headers=parties.subcontractor.headers).json()
    assert inbox["total"] == 1
    notification = inbox["items"][0]
    assert notification["type"] == "bid_placed"
    assert notification["related_case_id"] == str(case.id)

    count = client.get("/notifications/unread/count", headers=parties.subcontractor.headers).json()
    assert count == {"unread_count": 1}

    response = client.post(
        "/notifications/mark-read",
        json={"notification_ids": [notification["id"]]},
        headers=parties.subcontractor.headers,
    )
    assert response.json()["count"] == 1
    count = client.get("/notifications/unread/count", headers=parties.subcontractor.headers).json()
    assert count == {"unread_count": 0}


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "database": "ok"}


def test_inbox_can_be_narrowed_to_one_bid_or_case(client, parties, make_case) -> None:
    first_case, second_case = make_case(), make_case()
    bids = []
    for case in (first_case, second_case):
        response = client.post(
            "/bids",
            json={"case_id": str(case.id), "bid_amount": 500000, "funding_duration_days": 90},
            headers=parties.epc.headers,
        )
        bids.append(response.json())
    client.post(
        f"/bids/{bids[0]['id']}/negotiate",
        json={"amount": 450000, "duration": 60},
        headers=parties.epc.headers,
    )
    headers = parties.subcontractor.headers

    thread = client.get("/notifications", params={"bid_id": bids[0]["id"]}, headers=headers).json()
    assert [item["type"] for item in thread["items"]] == ["bid_countered", "bid_placed"]
    assert {item["related_bid_id"] for item in thread["items"]} == {bids[0]["id"]}

    other = client.get("/notifications", params={"case_id": str(second_case.id)}, headers=headers).json()
    assert other["total"] == 1

    response = client.post("/notifications/mark-all-read", params={"case_id": str(first_case.id)}, headers=headers)
    assert response.json() == {"count": 2}
    assert client.get("/notifications/unread/count", headers=headers).json() == {"unread_count": 1}
    unread = client.get("/notifications", params={"unread_only": True}, headers=headers).json()
    assert [item["related_case_id"] for item in unread["items"]] == [str(second_case.id)]


def test_marking_someone_elses_notification_changes_nothing(client, parties, make_case) -> None:
    case = make_case()
    client.post(
        "/bids",
        json={"case_id": str(case.id), "bid_amount": 500000, "funding_duration_days": 90},
        headers=parties.epc.headers,
    )
    notification = client.get("/notifications", headers=parties.subcontractor.headers).json()["items"][0]

    response = client.post(
        "/notifications/mark-read",
        json={"notification_ids": [notification["id"]]},
        headers=parties.outsider_subcontractor.headers,
    )

    assert response.json() == {"count": 0}
    count = client.get("/notifications/unread/count", headers=parties.subcontractor.headers).json()
    assert count == {"unread_count": 1}
