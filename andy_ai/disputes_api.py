from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from andy_ai.ai.assistant import FinancialAssistant, get_assistant
from andy_ai.auth.session_auth import get_current_user
from andy_ai.database import get_db
from andy_ai.models import Dispute, User
from andy_ai.schemas import DisputeCreate, DisputeUpdate

logger = logging.getLogger(__name__)

disputes_router = APIRouter(prefix="/api/disputes", tags=["disputes"])

# Disputes only move forward
ALLOWED_TRANSITIONS = {
    "pending": {"sent", "resolved"},
    "sent": {"resolved"},
    "resolved": set(),
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, set())


@disputes_router.post("", status_code=201)
def create_dispute(
    body: DisputeCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    assistant: FinancialAssistant = Depends(get_assistant)
):
    """Draft a dispute letter and track it"""
    letter = assistant.dispute_letter(body.creditor, body.account_number, body.reason, user)

    dispute = Dispute(
        user_id=user.id,
        creditor=body.creditor,
        account_number=body.account_number,
        reason=body.reason,
        status="pending",
        letter_content=letter
    )
    db.add(dispute)
    db.commit()
    db.refresh(dispute)
    logger.info(f"Created dispute {dispute.id} against {dispute.creditor}")
    return dispute.to_dict()


@disputes_router.get("")
def list_disputes(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    disputes = db.query(Dispute)\
        .filter(Dispute.user_id == user.id)\
        .order_by(Dispute.created_at.desc(), Dispute.id.desc())\
        .all()
    return [d.to_dict() for d in disputes]


@disputes_router.patch("/{dispute_id}")
def update_dispute(
    dispute_id: int,
    body: DisputeUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    dispute = db.query(Dispute).filter(
        Dispute.id == dispute_id,
        Dispute.user_id == user.id
    ).first()
    if not dispute:
        raise HTTPException(status_code=404, detail="Dispute not found")

    if not can_transition(dispute.status, body.status):
        raise HTTPException(
            status_code=400,
            detail=f"Cannot change dispute status from {dispute.status} to {body.status}"
        )

    dispute.status = body.status
    db.commit()
    db.refresh(dispute)
    return dispute.to_dict()
