from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WalletLoginRequest(BaseModel):
    wallet_address: str = Field(..., max_length=128)


class UserResponse(BaseModel):
    id: int
    wallet_address: str
    created_at: datetime

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    user: UserResponse
    isNewUser: bool
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    wallet_address: Optional[str] = None


class UserWalletResponse(BaseModel):
    wallet_address: str

    class Config:
        from_attributes = True
