from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from andy_ai.ai.assistant import FinancialAssistant, get_assistant
from andy_ai.ai.onboarding import advance
from andy_ai.auth.session_auth import get_current_user, get_optional_user
from andy_ai.database import get_db
from andy_ai.exceptions import AppException
from andy_ai.models import User
from andy_ai.schemas import OnboardingChatRequest

logger = logging.getLogger(__name__)

onboarding_router = APIRouter(prefix="/api/onboarding", tags=["onboarding"])


@onboarding_router.post("/chat")
def onboarding_chat(
    body: OnboardingChatRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    assistant: FinancialAssistant = Depends(get_assistant)
):
    """One turn of the onboarding conversation"""
    try:
        next_step, updated_data = advance(body.current_step, body.onboarding_data, body.message)
        response = assistant.onboarding_reply(
            body.message,
            body.current_step,
            updated_data,
            user.first_name if user else None
        )

        if user:
            user.onboarding_step = next_step
            user.onboarding_data = updated_data
            db.commit()

        return {
            "response": response,
            "nextStep": next_step,
            "updatedData": updated_data
        }
    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Onboarding chat error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error processing your message")


@onboarding_router.get("/state")
def onboarding_state(user: User = Depends(get_current_user)):
    return {
        "currentStep": user.onboarding_step or "welcome",
        "data": user.onboarding_data or {}
    }
