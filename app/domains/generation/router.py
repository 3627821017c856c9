from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.domains.art.schemas import ArtResponse
from app.domains.auth.models import User
from app.domains.auth.router import get_current_user
from app.domains.generation import schemas
from app.domains.generation.service import GenerationService
from app.shared.database.connection import get_db
from app.shared.replicate_client import ReplicateClient, get_replicate_client
from app.shared.storage import ObjectStorage, get_storage

router = APIRouter(prefix="/generate", tags=["generation"])


@router.post("", response_model=ArtResponse)
async def generate_art(
    payload: schemas.GenerateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    model: ReplicateClient = Depends(get_replicate_client),
    storage: ObjectStorage = Depends(get_storage),
):
    """
    Generate a pixel-art image from a prompt and store it as art

    **Possible errors:**
    - 400: Empty prompt or insufficient credits
    - 500: Model or storage failure (no credits are charged)
    - 504: Model or storage timed out
    """
    service = GenerationService(db, model=model, storage=storage)
    return await service.generate(current_user, payload.prompt)
