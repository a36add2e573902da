import pytest

from andy_ai.ai.onboarding import (
    advance, determine_next_step, extract_step_data,
    parse_amount, parse_credit_score, parse_goals, parse_yes_no
)


@pytest.mark.parametrize("message,expected", [
    ("I make 1200 a month", 1200),
    ("About $1,200.50 after taxes", 1200.5),
    ("roughly 3.5k", 3500),
    ("$4,000", 4000),
    ("no idea", None),
])
def test_parse_amount(message, expected):
    assert parse_amount(message) == expected


def test_parse_goals():
    assert parse_goals("Save for a house, pay off debt and build an emergency fund.") == [
        "Save for a house", "pay off debt", "build an emergency fund"
    ]
    assert parse_goals("   ") == []


def test_parse_yes_no():
    assert parse_yes_no("Yes, I have a car loan") is True
    assert parse_yes_no("No, I don't have any credit") is False
    assert parse_yes_no("I do") is True
    assert parse_yes_no("maybe?") is None


def test_parse_credit_score():
    assert parse_credit_score("My score is around 715") == 715
    assert parse_credit_score("I'm 25 years old with 900 points") is None


def test_extract_step_data():
    assert extract_step_data("income", "I earn $3,000") == {"monthlyIncome": 3000}
    assert extract_step_data("expenses", "about 2k") == {"monthlyExpenses": 2000}
    assert extract_step_data("credit", "It's 680") == {"creditScore": 680, "hasCredits": True}
    assert extract_step_data("credit", "nope") == {"hasCredits": False}
    assert extract_step_data("welcome", "hello") == {}


def test_determine_next_step():
    assert determine_next_step("welcome", {}) == "financial_goals"
    assert determine_next_step("income", {}) == "income"
    assert determine_next_step("income", {"monthlyIncome": 10}) == "expenses"
    assert determine_next_step("credit", {"hasCredits": False}) == "complete"
    assert determine_next_step("complete", {}) == "complete"
    assert determine_next_step("bogus", {}) == "welcome"


def test_advance_keeps_earlier_answers():
    step, data = advance("income", {"financialGoals": ["Travel"]}, "I make 2500")
    assert step == "expenses"
    assert data == {"financialGoals": ["Travel"], "monthlyIncome": 2500}

    step, data = advance("expenses", data, "not sure yet")
    assert step == "expenses"
    assert "monthlyExpenses" not in data


def test_onboarding_chat_anonymous(client, assistant):
    response = client.post("/api/onboarding/chat", json={
        "message": "I want to save for a trip and pay off my card",
        "currentStep": "financial_goals",
        "onboardingData": {},
    })
    assert response.status_code == 200
    data = response.json()
    assert data["nextStep"] == "income"
    assert data["updatedData"]["financialGoals"] == ["I want to save for a trip", "pay off my card"]
    assert data["response"] == "Great, thanks! (step financial_goals)"
    assert assistant.calls[-1][0] == "onboarding_reply"


def test_onboarding_progress_is_saved_for_user(logged_in_client):
    logged_in_client.post("/api/onboarding/chat", json={"message": "hi", "currentStep": "welcome"})
    logged_in_client.post("/api/onboarding/chat", json={
        "message": "Buy a house",
        "currentStep": "financial_goals",
    })

    state = logged_in_client.get("/api/onboarding/state").json()
    assert state["currentStep"] == "income"
    assert state["data"] == {"financialGoals": ["Buy a house"]}


def test_onboarding_state_requires_login(client):
    assert client.get("/api/onboarding/state").status_code == 401
