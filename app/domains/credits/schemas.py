from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CreditsBalanceResponse(BaseModel):
    credits_balance: int


class DepositRequest(BaseModel):
    amount: int = Field(..., description="Credits to add")
    transaction_hash: str = Field(..., max_length=255, description="On-chain deposit transaction hash")


class DepositResponse(BaseModel):
    success: bool = True
    duplicate: bool = Field(False, description="True when the hash was already credited")


class CreditTransactionResponse(BaseModel):
    id: int
    user_id: int
    amount: int
    status: str
    transaction_hash: Optional[str]
    description: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class CreditCostsResponse(BaseModel):
    generation: int
    chat_message: int
