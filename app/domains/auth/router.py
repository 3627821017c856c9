from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from app.domains.auth import models, schemas
from app.domains.auth.service import WalletAuthService
from app.shared.database.connection import get_db
from app.shared.errors import NotFoundError

router = APIRouter(prefix="/auth", tags=["authentication"])
security = APIKeyHeader(name="Authorization", auto_error=False)


def get_current_user(
    credential: Optional[str] = Depends(security),
    db: Session = Depends(get_db),
) -> models.User:
    """Resolve the caller on every request; raises 401 when absent or unknown."""
    return WalletAuthService(db).get_current_user(credential)


@router.post("", response_model=schemas.LoginResponse)
def login_with_wallet(
    login_request: schemas.WalletLoginRequest, db: Session = Depends(get_db)
):
    """
    Authenticate a wallet, registering it on first sight

    New wallets get a zero-balance credit account and ``isNewUser=true``.

    **Possible errors:**
    - 400: Wallet address is empty
    """
    auth_service = WalletAuthService(db)
    return auth_service.login(login_request.wallet_address)


@router.get("/me", response_model=schemas.UserResponse)
def get_me(
    credential: Optional[str] = Depends(security),
    db: Session = Depends(get_db),
):
    """
    Get current authenticated user info

    **Possible errors:**
    - 401: Missing or invalid credential
    - 404: Wallet not registered
    """
    auth_service = WalletAuthService(db)
    wallet_address = auth_service.resolve_wallet_address(credential)
    user = auth_service.get_user_by_wallet(wallet_address)
    if user is None:
        raise NotFoundError("User not found")
    return user
