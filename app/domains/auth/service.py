import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.auth import models, schemas
from app.domains.credits.models import CreditAccount
from app.shared.errors import AuthenticationError, ValidationError

ALGORITHM = "HS256"

logger = logging.getLogger(__name__)


class WalletAuthService:
    def __init__(self, db: Session):
        self.db = db

    def create_access_token(
        self, data: dict, expires_delta: Optional[timedelta] = None
    ) -> str:
        """
        Create JWT access token
        """
        to_encode = data.copy()
        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + timedelta(minutes=15)
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> schemas.TokenData:
        """
        Verify JWT token and return token data
        """
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        except JWTError:
            raise AuthenticationError("Could not validate credentials")
        wallet_address = payload.get("sub")
        if not wallet_address:
            raise AuthenticationError("Could not validate credentials")
        return schemas.TokenData(wallet_address=wallet_address)

    def get_user_by_wallet(self, wallet_address: str) -> Optional[models.User]:
        return (
            self.db.query(models.User)
            .filter(models.User.wallet_address == wallet_address)
            .first()
        )

    def authenticate_wallet(self, wallet_address: str) -> Tuple[models.User, bool]:
        """
        Look up the wallet's user, creating it with an empty credit account on first sight.

        Returns the user and whether it was created by this call.
        """
        if not wallet_address or not wallet_address.strip():
            raise ValidationError("Wallet address is required")

        user = self.get_user_by_wallet(wallet_address)
        if user:
            return user, False

        user = models.User(wallet_address=wallet_address)
        user.credit_account = CreditAccount(credits_balance=0)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request registered the same wallet first
            self.db.rollback()
            user = self.get_user_by_wallet(wallet_address)
            if user is None:
                raise
            return user, False

        self.db.refresh(user)
        logger.info("Registered new wallet %s as user %s", wallet_address, user.id)
        return user, True

    def login(self, wallet_address: str) -> schemas.LoginResponse:
        user, is_new_user = self.authenticate_wallet(wallet_address)
        access_token = self.create_access_token(
            data={"sub": user.wallet_address},
            expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        )
        return schemas.LoginResponse(
            user=schemas.UserResponse.model_validate(user),
            isNewUser=is_new_user,
            access_token=access_token,
        )

    def resolve_wallet_address(self, credential: Optional[str]) -> str:
        """
        Turn an Authorization header value into a wallet address.

        Accepts ``Bearer <token>``, a bare token, or (when enabled) a bare
        wallet address.
        """
        value = (credential or "").strip()
        if value[:7].lower() == "bearer ":
            value = value[7:].strip()
        elif value.lower() == "bearer":
            value = ""
        if not value:
            raise AuthenticationError("Authentication required")

        if value.count(".") == 2:
            return self.verify_token(value).wallet_address
        if not settings.allow_wallet_bearer:
            raise AuthenticationError("Could not validate credentials")
        return value

    def get_current_user(self, credential: Optional[str]) -> models.User:
        wallet_address = self.resolve_wallet_address(credential)
        user = self.get_user_by_wallet(wallet_address)
        if user is None:
            raise AuthenticationError("Wallet not registered")
        return user
