from sqlalchemy import (
    Column, Integer, String, Text, DateTime, JSON, Numeric, Boolean, ForeignKey, Index
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone_number = Column(String, nullable=True)
    date_of_birth = Column(String, nullable=True)
    address = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip_code = Column(String, nullable=True)
    ssn = Column(String, nullable=True)
    onboarding_step = Column(String, default="welcome")
    onboarding_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")
    credit_reports = relationship("CreditReport", back_populates="user", cascade="all, delete-orphan")

    def to_public_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "dateOfBirth": self.date_of_birth,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "onboardingStep": self.onboarding_step,
            "createdAt": self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f"<User(username='{self.username}')>"

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    type = Column(String, nullable=False)  # 'income' | 'expense'
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    date = Column(DateTime, default=datetime.utcnow, index=True)
    plaid_id = Column(String, unique=True, nullable=True)
    merchant_name = Column(String, nullable=True)
    account_id = Column(String, nullable=True)
    pending = Column(Boolean, default=False)

    user = relationship("User", back_populates="transactions")

    __table_args__ = (
        Index('idx_user_transaction_date', 'user_id', 'date'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "amount": float(self.amount) if self.amount is not None else 0.0,
            "category": self.category,
            "description": self.description,
            "date": self.date.isoformat() if self.date else None,
            "merchantName": self.merchant_name,
            "accountId": self.account_id,
            "pending": bool(self.pending)
        }

class CreditReport(Base):
    __tablename__ = "credit_reports"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    score = Column(Integer, nullable=False)
    report_date = Column(DateTime, default=datetime.utcnow, index=True)
    bureau = Column(String, nullable=False)
    factors = Column(Text, nullable=True)
    report_data = Column(Text, nullable=True)

    user = relationship("User", back_populates="credit_reports")

class Dispute(Base):
    __tablename__ = "disputes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    creditor = Column(String, nullable=False)
    account_number = Column(String, nullable=True)
    reason = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="pending")  # 'pending' | 'sent' | 'resolved'
    letter_content = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "creditor": self.creditor,
            "accountNumber": self.account_number,
            "reason": self.reason,
            "status": self.status,
            "letterContent": self.letter_content,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None
        }

class BankAccount(Base):
    __tablename__ = "bank_accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    plaid_account_id = Column(String, unique=True, nullable=True)
    institution_name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    account_number = Column(String, nullable=False)
    balance = Column(Numeric(12, 2), nullable=True)
    last_sync = Column(DateTime, nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "institutionName": self.institution_name,
            "accountType": self.account_type,
            "accountNumber": self.account_number,
            "balance": float(self.balance) if self.balance is not None else None,
            "lastSync": self.last_sync.isoformat() if self.last_sync else None
        }

class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    name = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    frequency = Column(String, nullable=False)  # 'monthly' | 'yearly'
    next_billing = Column(DateTime, nullable=True)
    active = Column(Boolean, default=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "amount": float(self.amount),
            "frequency": self.frequency,
            "nextBilling": self.next_billing.isoformat() if self.next_billing else None,
            "active": bool(self.active)
        }

class PlaidItem(Base):
    __tablename__ = "plaid_items"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    item_id = Column(String, unique=True, nullable=False, index=True)
    access_token = Column(String, nullable=False)
    institution_name = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_sync = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<PlaidItem(item_id='{self.item_id}')>"

class UploadedDocument(Base):
    __tablename__ = "uploaded_documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    filename = Column(String, index=True)
    stored_path = Column(String)
    mime_type = Column(String)
    size = Column(Integer)
    extracted_chars = Column(Integer, default=0)
    analysis = Column(Text, nullable=True)
    upload_date = Column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index('idx_user_upload_date', 'user_id', 'upload_date'),
    )
