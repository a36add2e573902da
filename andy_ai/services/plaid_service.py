"""
Plaid integration: account linking, balances and transaction sync
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import plaid
from plaid import ApiException
from plaid.api import plaid_api
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.item_get_request import ItemGetRequest
from plaid.model.accounts_get_request import AccountsGetRequest
from plaid.model.transactions_get_request import TransactionsGetRequest
from plaid.model.transactions_get_request_options import TransactionsGetRequestOptions
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.products import Products
from plaid.model.country_code import CountryCode
from sqlalchemy.orm import Session

from andy_ai.config import settings
from andy_ai.exceptions import AppException
from andy_ai.models import BankAccount, PlaidItem, Transaction

logger = logging.getLogger(__name__)

PLAID_HOSTS = {
    "sandbox": plaid.Environment.Sandbox,
    "production": plaid.Environment.Production,
}

PAGE_SIZE = 500


def _as_dict(obj) -> Dict[str, Any]:
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _as_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def map_plaid_transaction(user_id: int, raw) -> Dict[str, Any]:
    """Plaid amounts are positive for money leaving the account"""
    data = _as_dict(raw)
    amount = float(data["amount"])

    category = None
    if data.get("category"):
        category = data["category"][0]
    elif data.get("personal_finance_category"):
        category = data["personal_finance_category"].get("primary")

    return {
        "user_id": user_id,
        "type": "expense" if amount > 0 else "income",
        "amount": abs(amount),
        "category": category,
        "description": data.get("name"),
        "merchant_name": data.get("merchant_name"),
        "plaid_id": data["transaction_id"],
        "account_id": data.get("account_id"),
        "pending": bool(data.get("pending", False)),
        "date": _as_datetime(data.get("date")),
    }


def upsert_transactions(db: Session, rows: List[Dict[str, Any]]) -> Tuple[int, int]:
    """Insert new Plaid transactions, refresh the ones already stored"""
    created = updated = 0
    for row in rows:
        existing = db.query(Transaction).filter(Transaction.plaid_id == row["plaid_id"]).first()
        if existing:
            existing.amount = row["amount"]
            existing.category = row["category"]
            existing.description = row["description"]
            existing.pending = row["pending"]
            updated += 1
        else:
            db.add(Transaction(**row))
            created += 1
    db.commit()
    return created, updated


class PlaidService:
    def __init__(self, client: Optional[plaid_api.PlaidApi] = None):
        self.client = client or self._build_client()

    def _build_client(self) -> plaid_api.PlaidApi:
        configuration = plaid.Configuration(
            host=PLAID_HOSTS.get(settings.PLAID_ENV, plaid.Environment.Sandbox),
            api_key={
                'clientId': settings.PLAID_CLIENT_ID,
                'secret': settings.PLAID_SECRET,
            }
        )
        return plaid_api.PlaidApi(plaid.ApiClient(configuration))

    def _call(self, name: str, request):
        try:
            return getattr(self.client, name)(request)
        except ApiException as e:
            logger.error(f"Plaid {name} failed: {e.status} {e.body}")
            raise AppException(502, f"Plaid request failed: {name}")

    def create_link_token(self, user_id: int) -> str:
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id=str(user_id)),
            client_name="Andy AI",
            products=[Products(p) for p in settings.PLAID_PRODUCTS],
            country_codes=[CountryCode(c) for c in settings.PLAID_COUNTRY_CODES],
            language=settings.PLAID_LANGUAGE
        )
        response = self._call("link_token_create", request)
        return response["link_token"]

    def exchange_public_token(self, public_token: str) -> Tuple[str, str]:
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call("item_public_token_exchange", request)
        return response["access_token"], response["item_id"]

    def get_institution_name(self, access_token: str) -> Optional[str]:
        item = self._call("item_get", ItemGetRequest(access_token=access_token))["item"]
        institution_id = _as_dict(item).get("institution_id")
        if not institution_id:
            return None
        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=[CountryCode(c) for c in settings.PLAID_COUNTRY_CODES]
        )
        response = self._call("institutions_get_by_id", request)
        return response['institution']['name']

    def link_item(self, db: Session, user_id: int, public_token: str,
                  institution_name: Optional[str] = None) -> PlaidItem:
        """Exchange the public token and remember the item for later syncs"""
        access_token, item_id = self.exchange_public_token(public_token)
        if not institution_name:
            try:
                institution_name = self.get_institution_name(access_token)
            except AppException:
                logger.warning(f"Could not resolve institution for item {item_id}")

        item = db.query(PlaidItem).filter(PlaidItem.item_id == item_id).first()
        if item and item.user_id != user_id:
            logger.warning(f"User {user_id} tried to link Plaid item {item_id} owned by user {item.user_id}")
            raise AppException(409, "This bank login is already linked to another account")
        if item:
            item.access_token = access_token
        else:
            item = PlaidItem(
                user_id=user_id,
                item_id=item_id,
                access_token=access_token,
                institution_name=institution_name
            )
            db.add(item)
        db.commit()
        db.refresh(item)
        logger.info(f"Linked Plaid item {item_id} for user {user_id}")
        return item

    def fetch_transactions(self, access_token: str, days: Optional[int] = None) -> List[Any]:
        days = days or settings.PLAID_HISTORY_DAYS
        end_date = date.today()
        start_date = end_date - timedelta(days=days)

        transactions = []
        while True:
            request = TransactionsGetRequest(
                access_token=access_token,
                start_date=start_date,
                end_date=end_date,
                options=TransactionsGetRequestOptions(count=PAGE_SIZE, offset=len(transactions))
            )
            response = self._call("transactions_get", request)
            page = list(response["transactions"])
            transactions.extend(page)
            if not page or len(transactions) >= response["total_transactions"]:
                break
        return transactions

    def fetch_and_store_transactions(self, db: Session, user_id: int, access_token: str,
                                     days: Optional[int] = None) -> List[Dict[str, Any]]:
        raw = self.fetch_transactions(access_token, days)
        rows = [map_plaid_transaction(user_id, t) for t in raw]
        created, updated = upsert_transactions(db, rows)
        logger.info(f"Stored Plaid transactions for user {user_id}: {created} new, {updated} updated")
        return rows

    def sync_accounts(self, db: Session, user_id: int, access_token: str,
                      institution_name: Optional[str] = None) -> List[BankAccount]:
        response = self._call("accounts_get", AccountsGetRequest(access_token=access_token))
        now = datetime.utcnow()
        accounts = []
        for raw in response["accounts"]:
            data = _as_dict(raw)
            balances = data.get("balances") or {}
            account = db.query(BankAccount).filter(
                BankAccount.plaid_account_id == data["account_id"]
            ).first()
            if not account:
                account = BankAccount(user_id=user_id, plaid_account_id=data["account_id"])
                db.add(account)
            account.institution_name = institution_name or data.get("name") or "Unknown"
            account.account_type = str(data.get("subtype") or data.get("type") or "other")
            account.account_number = data.get("mask") or ""
            account.balance = balances.get("current")
            account.last_sync = now
            accounts.append(account)
        db.commit()
        return accounts

    def sync_item(self, db: Session, item: PlaidItem) -> Dict[str, int]:
        accounts = self.sync_accounts(db, item.user_id, item.access_token, item.institution_name)
        rows = self.fetch_and_store_transactions(db, item.user_id, item.access_token)
        item.last_sync = datetime.utcnow()
        db.commit()
        return {"accounts": len(accounts), "transactions": len(rows)}


_plaid_service: Optional[PlaidService] = None


def get_plaid_service() -> PlaidService:
    global _plaid_service
    if _plaid_service is None:
        _plaid_service = PlaidService()
    return _plaid_service
