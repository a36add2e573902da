"""
Request bodies accepted by the API. Field aliases follow the camelCase names the
web and mobile clients send.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)
    email: str = Field(min_length=3)
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    date_of_birth: Optional[str] = Field(default=None, alias="dateOfBirth")
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(default=None, alias="zipCode")
    ssn: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("email")
    @classmethod
    def email_has_at(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("email must be a valid address")
        return value


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    message: str = Field(min_length=1)
    history: List[ChatMessage] = []


class OnboardingChatRequest(BaseModel):
    message: str = Field(min_length=1)
    current_step: Optional[str] = Field(default="welcome", alias="currentStep")
    onboarding_data: Dict[str, Any] = Field(default_factory=dict, alias="onboardingData")

    class Config:
        populate_by_name = True


class PublicTokenRequest(BaseModel):
    public_token: str = Field(alias="publicToken", min_length=1)
    institution_name: Optional[str] = Field(default=None, alias="institutionName")

    class Config:
        populate_by_name = True


class TransactionCreate(BaseModel):
    type: str
    amount: float = Field(gt=0)
    category: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None

    @field_validator("type")
    @classmethod
    def known_type(cls, value: str) -> str:
        if value not in ("income", "expense"):
            raise ValueError("type must be 'income' or 'expense'")
        return value


class SubscriptionUpdate(BaseModel):
    active: bool


class DisputeCreate(BaseModel):
    creditor: str = Field(min_length=1)
    account_number: Optional[str] = Field(default=None, alias="accountNumber")
    reason: str = Field(min_length=1)

    class Config:
        populate_by_name = True


class DisputeUpdate(BaseModel):
    status: str
