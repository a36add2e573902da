import re
import json
from typing import Optional, Dict, Any

from andy_ai.models import CreditReport

MIN_SCORE = 300
MAX_SCORE = 850

_SCORE_AFTER_WORD_RE = re.compile(r"score\D{0,40}?(\d{3})\b", re.IGNORECASE)


def score_rating(score: Optional[int]) -> Optional[str]:
    if not score:
        return None
    if score >= 700:
        return "Excellent"
    if score >= 600:
        return "Good"
    return "Needs improvement"


def find_score_in_text(text: str) -> Optional[int]:
    """First 300-850 number that follows the word 'score'"""
    for match in _SCORE_AFTER_WORD_RE.finditer(text or ""):
        value = int(match.group(1))
        if MIN_SCORE <= value <= MAX_SCORE:
            return value
    return None


def report_to_dict(report: Optional[CreditReport]) -> Dict[str, Any]:
    if report is None:
        return {
            "score": 0,
            "bureau": None,
            "reportDate": None,
            "factors": [],
            "rating": None
        }

    try:
        factors = json.loads(report.factors) if report.factors else []
    except json.JSONDecodeError:
        factors = [report.factors]

    return {
        "id": report.id,
        "score": report.score,
        "bureau": report.bureau,
        "reportDate": report.report_date.isoformat() if report.report_date else None,
        "factors": factors,
        "rating": score_rating(report.score)
    }
