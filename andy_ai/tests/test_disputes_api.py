import pytest

from andy_ai.disputes_api import can_transition
from andy_ai.models import Dispute, User


@pytest.mark.parametrize("current,new,allowed", [
    ("pending", "sent", True),
    ("pending", "resolved", True),
    ("sent", "resolved", True),
    ("sent", "pending", False),
    ("resolved", "sent", False),
    ("resolved", "pending", False),
    ("pending", "pending", False),
    ("pending", "archived", False),
])
def test_can_transition(current, new, allowed):
    assert can_transition(current, new) is allowed


def _create(client, **overrides):
    body = {"creditor": "Acme Bank", "accountNumber": "1234", "reason": "Not my account"}
    body.update(overrides)
    return client.post("/api/disputes", json=body)


def test_create_dispute_drafts_letter(logged_in_client, assistant):
    response = _create(logged_in_client)
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["creditor"] == "Acme Bank"
    assert data["accountNumber"] == "1234"
    assert data["letterContent"] == "To Acme Bank: I dispute this account. Not my account"
    assert assistant.calls[-1] == ("dispute_letter", ("Acme Bank", "1234", "Not my account"))


def test_create_dispute_requires_reason(logged_in_client):
    assert _create(logged_in_client, reason="").status_code == 422


def test_dispute_moves_forward_only(logged_in_client):
    dispute_id = _create(logged_in_client).json()["id"]

    sent = logged_in_client.patch(f"/api/disputes/{dispute_id}", json={"status": "sent"})
    assert sent.status_code == 200
    assert sent.json()["status"] == "sent"

    back = logged_in_client.patch(f"/api/disputes/{dispute_id}", json={"status": "pending"})
    assert back.status_code == 400

    resolved = logged_in_client.patch(f"/api/disputes/{dispute_id}", json={"status": "resolved"})
    assert resolved.json()["status"] == "resolved"

    listed = logged_in_client.get("/api/disputes").json()
    assert [d["status"] for d in listed] == ["resolved"]


def test_cannot_touch_other_users_dispute(logged_in_client, db_session):
    other = User(username="other", password="x", first_name="O", last_name="T", email="o@t.com")
    db_session.add(other)
    db_session.commit()
    dispute = Dispute(user_id=other.id, creditor="X", reason="Y", status="pending")
    db_session.add(dispute)
    db_session.commit()

    response = logged_in_client.patch(f"/api/disputes/{dispute.id}", json={"status": "sent"})
    assert response.status_code == 404
    assert logged_in_client.get("/api/disputes").json() == []


def test_disputes_require_login(client):
    assert _create(client).status_code == 401
    assert client.get("/api/disputes").status_code == 401
