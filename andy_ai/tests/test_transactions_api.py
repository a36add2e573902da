from datetime import datetime

from andy_ai.models import Subscription, Transaction, User


def _add(client, type, amount, date, category=None, description=None):
    response = client.post("/api/transactions", json={
        "type": type,
        "amount": amount,
        "category": category,
        "description": description,
        "date": date,
    })
    assert response.status_code == 201
    return response.json()


def test_summary_requires_login(client):
    assert client.get("/api/transactions/summary").status_code == 401


def test_summary_for_new_user_is_empty(logged_in_client):
    data = logged_in_client.get("/api/transactions/summary").json()
    assert data["income"] == 0
    assert data["expenses"] == 0
    assert data["balance"] == 0
    assert data["transactions"] == []


def test_summary_reflects_created_transactions(logged_in_client):
    _add(logged_in_client, "income", 2500, "2024-03-01T09:00:00", "Salary", "Payroll")
    _add(logged_in_client, "expense", 1200, "2024-03-02T10:00:00", "Rent")
    _add(logged_in_client, "expense", 45.5, "2024-03-04T10:00:00", "Food", "Groceries")

    data = logged_in_client.get("/api/transactions/summary?limit=2").json()
    assert data["income"] == 2500
    assert data["expenses"] == 1245.5
    assert data["balance"] == 1254.5
    assert data["trends"][-1] == {"date": "2024-03-04", "balance": 1254.5}
    assert [c["category"] for c in data["categories"]] == ["Rent", "Food"]
    assert [t["description"] for t in data["transactions"]] == ["Groceries", None]


def test_summary_only_counts_own_transactions(logged_in_client, db_session):
    other = User(username="other", password="x", first_name="O", last_name="T", email="o@t.com")
    db_session.add(other)
    db_session.commit()
    db_session.add(Transaction(user_id=other.id, type="income", amount=999,
                               date=datetime(2024, 1, 1)))
    db_session.commit()

    data = logged_in_client.get("/api/transactions/summary").json()
    assert data["income"] == 0


def test_create_transaction_validation(logged_in_client):
    bad_type = logged_in_client.post("/api/transactions", json={"type": "gift", "amount": 5})
    assert bad_type.status_code == 422
    negative = logged_in_client.post("/api/transactions", json={"type": "income", "amount": -5})
    assert negative.status_code == 422


def test_list_transactions_paginates_and_filters(logged_in_client):
    for day in range(1, 6):
        _add(logged_in_client, "expense", 10 * day, f"2024-03-0{day}T12:00:00")
    _add(logged_in_client, "income", 100, "2024-03-06T12:00:00")

    page = logged_in_client.get("/api/transactions?page=1&per_page=4").json()
    assert page["total"] == 6
    assert page["pages"] == 2
    assert len(page["items"]) == 4
    assert page["items"][0]["type"] == "income"

    expenses = logged_in_client.get("/api/transactions?type=expense&per_page=50").json()
    assert expenses["total"] == 5
    assert all(t["type"] == "expense" for t in expenses["items"])

    assert logged_in_client.get("/api/transactions?type=gift").status_code == 422


def test_detect_and_toggle_subscriptions(logged_in_client, db_session):
    for month in (1, 2, 3):
        _add(logged_in_client, "expense", 12.99, f"2024-0{month}-15T00:00:00", "Music", "Spotify")
    _add(logged_in_client, "expense", 60, "2024-03-01T00:00:00", "Food", "Dinner")

    detected = logged_in_client.post("/api/subscriptions/detect").json()["created"]
    assert len(detected) == 1
    assert detected[0]["name"] == "Spotify"
    assert detected[0]["amount"] == 12.99
    assert detected[0]["frequency"] == "monthly"
    assert detected[0]["nextBilling"].startswith("2024-04-15")

    # Running detection again does not duplicate
    again = logged_in_client.post("/api/subscriptions/detect").json()["created"]
    assert again == []
    assert db_session.query(Subscription).count() == 1

    sub_id = detected[0]["id"]
    response = logged_in_client.patch(f"/api/subscriptions/{sub_id}", json={"active": False})
    assert response.status_code == 200
    assert response.json()["active"] is False

    listed = logged_in_client.get("/api/subscriptions").json()
    assert listed[0]["active"] is False


def test_update_missing_subscription(logged_in_client):
    response = logged_in_client.patch("/api/subscriptions/999", json={"active": True})
    assert response.status_code == 404
