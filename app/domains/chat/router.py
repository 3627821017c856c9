from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.domains.auth.models import User
from app.domains.auth.router import get_current_user
from app.domains.chat import schemas
from app.domains.chat.service import ChatService
from app.shared.database.connection import get_db
from app.shared.replicate_client import ReplicateClient, get_replicate_client

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=schemas.ChatResponse)
async def chat_with_art(
    payload: schemas.ChatRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    model: ReplicateClient = Depends(get_replicate_client),
):
    """
    Talk to the companion of one of your art pieces

    **Possible errors:**
    - 400: Insufficient credits
    - 403: Caller does not own the art
    - 404: Art not found
    """
    service = ChatService(db, model=model)
    return await service.send_message(current_user, payload.art_id, payload.message)
