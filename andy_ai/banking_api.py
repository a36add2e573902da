"""
Plaid account linking endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Any, Dict
import logging

from andy_ai.auth.session_auth import get_current_user
from andy_ai.database import get_db
from andy_ai.exceptions import AppException
from andy_ai.models import BankAccount, PlaidItem, User
from andy_ai.schemas import PublicTokenRequest
from andy_ai.services.plaid_service import PlaidService, get_plaid_service

logger = logging.getLogger(__name__)

plaid_router = APIRouter(prefix="/api/plaid", tags=["plaid"])

SYNC_WEBHOOK_CODES = {
    "DEFAULT_UPDATE",
    "INITIAL_UPDATE",
    "HISTORICAL_UPDATE",
    "SYNC_UPDATES_AVAILABLE",
}


@plaid_router.post("/create-link-token")
def create_link_token(
    user: User = Depends(get_current_user),
    plaid_service: PlaidService = Depends(get_plaid_service)
):
    """Token that initializes Plaid Link on the client"""
    link_token = plaid_service.create_link_token(user.id)
    return {"linkToken": link_token}


@plaid_router.post("/exchange-public-token")
def exchange_public_token(
    body: PublicTokenRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    plaid_service: PlaidService = Depends(get_plaid_service)
):
    """Link a bank login and pull its accounts and transactions"""
    try:
        item = plaid_service.link_item(db, user.id, body.public_token, body.institution_name)
        counts = plaid_service.sync_item(db, item)
        return {
            "itemId": item.item_id,
            "institutionName": item.institution_name,
            **counts
        }
    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Error linking Plaid item: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Error linking bank account")


@plaid_router.post("/sync")
def sync_items(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    plaid_service: PlaidService = Depends(get_plaid_service)
):
    items = db.query(PlaidItem).filter(PlaidItem.user_id == user.id).all()
    results = []
    for item in items:
        item_id = item.item_id
        try:
            counts = plaid_service.sync_item(db, item)
            results.append({"itemId": item_id, "status": "success", **counts})
        except AppException as e:
            db.rollback()
            logger.error(f"Error syncing {item_id}: {e.detail}")
            results.append({"itemId": item_id, "status": "error", "error": e.detail})
        except Exception as e:
            db.rollback()
            logger.error(f"Error syncing {item_id}: {e}", exc_info=True)
            results.append({"itemId": item_id, "status": "error", "error": "Error syncing bank account"})

    return {"status": "complete", "results": results}


@plaid_router.get("/accounts")
def list_accounts(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    accounts = db.query(BankAccount).filter(BankAccount.user_id == user.id).all()
    return [a.to_dict() for a in accounts]


@plaid_router.post("/webhook")
def plaid_webhook(
    payload: Dict[str, Any],
    db: Session = Depends(get_db),
    plaid_service: PlaidService = Depends(get_plaid_service)
):
    """Re-sync an item when Plaid reports new transactions"""
    webhook_type = payload.get("webhook_type")
    webhook_code = payload.get("webhook_code")
    item_id = payload.get("item_id")
    logger.info(f"Plaid webhook {webhook_type}/{webhook_code} for item {item_id}")

    if webhook_type != "TRANSACTIONS" or webhook_code not in SYNC_WEBHOOK_CODES:
        return {"status": "ignored"}

    try:
        item = db.query(PlaidItem).filter(PlaidItem.item_id == item_id).first()
        if not item:
            logger.warning(f"Webhook for unknown Plaid item {item_id}")
            return {"status": "ignored"}

        counts = plaid_service.sync_item(db, item)
        return {"status": "synced", **counts}
    except (HTTPException, AppException):
        raise
    except Exception as e:
        logger.error(f"Error handling Plaid webhook for {item_id}: {e}", exc_info=True)
        db.rollback()
        raise HTTPException(status_code=500, detail="Error processing webhook")
