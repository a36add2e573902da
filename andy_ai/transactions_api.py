"""
Transaction summary, manual entry and recurring charge tracking
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import logging

from andy_ai.auth.session_auth import get_current_user
from andy_ai.database import get_db
from andy_ai.models import Subscription, Transaction, User
from andy_ai.schemas import SubscriptionUpdate, TransactionCreate
from andy_ai.services.financial_summary import detect_recurring, summarize_transactions
from andy_ai.utils.helpers import paginate_query

logger = logging.getLogger(__name__)

transactions_router = APIRouter(prefix="/api/transactions", tags=["transactions"])
subscriptions_router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@transactions_router.get("/summary")
def transactions_summary(
    limit: int = Query(20, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Income, expenses, balance and trend for the dashboard"""
    try:
        transactions = db.query(Transaction).filter(Transaction.user_id == user.id).all()
        summary = summarize_transactions(transactions)

        recent = sorted(
            transactions,
            key=lambda t: (t.date or datetime.min, t.id),
            reverse=True
        )[:limit]
        summary["transactions"] = [t.to_dict() for t in recent]
        return summary
    except Exception as e:
        logger.error(f"Error building transaction summary: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error building transaction summary")


@transactions_router.get("")
def list_transactions(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=200),
    type: Optional[str] = Query(None, pattern="^(income|expense)$"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    query = db.query(Transaction).filter(Transaction.user_id == user.id)
    if type:
        query = query.filter(Transaction.type == type)
    query = query.order_by(Transaction.date.desc(), Transaction.id.desc())

    result = paginate_query(query, page, per_page)
    result["items"] = [t.to_dict() for t in result["items"]]
    return result


@transactions_router.post("", status_code=201)
def create_transaction(
    body: TransactionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    transaction = Transaction(
        user_id=user.id,
        type=body.type,
        amount=body.amount,
        category=body.category,
        description=body.description,
        date=body.date or datetime.utcnow()
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction.to_dict()


@subscriptions_router.get("")
def list_subscriptions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    subscriptions = db.query(Subscription)\
        .filter(Subscription.user_id == user.id)\
        .order_by(Subscription.amount.desc())\
        .all()
    return [s.to_dict() for s in subscriptions]


@subscriptions_router.post("/detect")
def detect_subscriptions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Store recurring expenses found in the user's transactions"""
    transactions = db.query(Transaction).filter(Transaction.user_id == user.id).all()
    existing = {
        s.name for s in db.query(Subscription).filter(Subscription.user_id == user.id).all()
    }

    created = []
    for charge in detect_recurring(transactions):
        if charge["name"] in existing:
            continue
        subscription = Subscription(
            user_id=user.id,
            name=charge["name"],
            amount=charge["amount"],
            frequency="monthly",
            next_billing=charge["next_billing"],
            active=True
        )
        db.add(subscription)
        created.append(subscription)
    db.commit()

    logger.info(f"Created {len(created)} subscriptions for user {user.id}")
    return {"created": [s.to_dict() for s in created]}


@subscriptions_router.patch("/{subscription_id}")
def update_subscription(
    subscription_id: int,
    body: SubscriptionUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    subscription = db.query(Subscription).filter(
        Subscription.id == subscription_id,
        Subscription.user_id == user.id
    ).first()
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")

    subscription.active = body.active
    db.commit()
    return subscription.to_dict()
