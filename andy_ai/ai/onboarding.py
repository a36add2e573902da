"""
Onboarding conversation state: which step comes next and what the user's answer
tells us about their finances.
"""

import re
from typing import Dict, Any, List, Optional

STEPS = ["welcome", "financial_goals", "income", "expenses", "credit", "complete"]

DATA_STEPS = {"financial_goals", "income", "expenses", "credit"}

_AMOUNT_RE = re.compile(r"\$?\s*(\d{1,3}(?:,\d{3})+|\d+)(?:\.(\d{1,2}))?\s*(k\b)?", re.IGNORECASE)
_SCORE_RE = re.compile(r"\b([3-8]\d{2})\b")
_GOAL_SPLIT_RE = re.compile(r"\s*(?:,|;|\n|\band\b|•|-\s)\s*", re.IGNORECASE)

_YES = {"yes", "yeah", "yep", "sure", "i do", "have", "si", "sí"}
_NO = {"no", "nope", "none", "don't", "do not", "dont", "never"}


def parse_amount(message: str) -> Optional[float]:
    """First money amount in the message: 1200, $1,200.50 or 3.5k"""
    match = _AMOUNT_RE.search(message)
    if not match:
        return None

    whole, cents, thousands = match.groups()
    value = float(whole.replace(",", ""))
    if cents:
        value += float(f"0.{cents}")
    if thousands:
        value *= 1000
    return round(value, 2)


def parse_goals(message: str) -> List[str]:
    parts = [part.strip(" .!") for part in _GOAL_SPLIT_RE.split(message)]
    return [part for part in parts if part]


def parse_yes_no(message: str) -> Optional[bool]:
    text = message.lower()
    words = set(re.findall(r"[a-záéíóú']+", text))
    if words & _NO or any(phrase in text for phrase in ("don't", "do not")):
        return False
    if words & _YES or "i do" in text:
        return True
    return None


def parse_credit_score(message: str) -> Optional[int]:
    for match in _SCORE_RE.finditer(message):
        score = int(match.group(1))
        if 300 <= score <= 850:
            return score
    return None


def extract_step_data(step: str, message: str) -> Dict[str, Any]:
    """Pull the data the current step asks for out of the user's message"""
    if step == "financial_goals":
        goals = parse_goals(message)
        return {"financialGoals": goals} if goals else {}

    if step == "income":
        amount = parse_amount(message)
        return {"monthlyIncome": amount} if amount is not None else {}

    if step == "expenses":
        amount = parse_amount(message)
        return {"monthlyExpenses": amount} if amount is not None else {}

    if step == "credit":
        data = {}
        score = parse_credit_score(message)
        has_credits = parse_yes_no(message)
        if score is not None:
            data["creditScore"] = score
            data["hasCredits"] = True
        elif has_credits is not None:
            data["hasCredits"] = has_credits
        return data

    return {}


def determine_next_step(step: str, extracted: Dict[str, Any]) -> str:
    if step not in STEPS:
        return "welcome"
    if step == "complete":
        return step
    if step in DATA_STEPS and not extracted:
        return step
    return STEPS[STEPS.index(step) + 1]


def advance(step: Optional[str], data: Optional[Dict[str, Any]], message: str):
    """Return (next_step, updated_data) for one user message"""
    step = step if step in STEPS else "welcome"
    extracted = extract_step_data(step, message)
    updated = dict(data or {})
    updated.update(extracted)
    return determine_next_step(step, extracted), updated
