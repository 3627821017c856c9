from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.domains.auth import schemas
from app.domains.users.service import UserService
from app.shared.database.connection import get_db

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/{user_id}/wallet", response_model=schemas.UserWalletResponse)
def read_user_wallet(user_id: int, db: Session = Depends(get_db)):
    user_service = UserService(db)
    return user_service.get_user_by_id(user_id)
