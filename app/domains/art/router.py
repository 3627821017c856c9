from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.art import schemas
from app.domains.art.service import ArtStore
from app.domains.auth.models import User
from app.domains.auth.router import get_current_user
from app.shared.database.connection import get_db
from app.shared.storage import ObjectStorage, get_storage
from app.shared.utils.response import Page, SuccessResponse

router = APIRouter(prefix="/art", tags=["art"])


@router.get("", response_model=Page[schemas.ArtResponse])
def list_art(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    """Public gallery, newest first"""
    store = ArtStore(db)
    return store.list_all(page=page, limit=limit)


@router.get("/user", response_model=List[schemas.ArtResponse])
def list_my_art(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Art owned by the caller, newest first"""
    store = ArtStore(db)
    return store.list_by_owner(current_user.id)


@router.get("/{art_id}", response_model=schemas.ArtDetailResponse)
def get_art(
    art_id: int,
    db: Session = Depends(get_db),
):
    """Get an art piece with its listing history"""
    store = ArtStore(db)
    return store.get(art_id)


@router.delete("/{art_id}", response_model=SuccessResponse)
async def delete_art(
    art_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    """
    Delete an art piece (owner only)

    **Possible errors:**
    - 403: Caller does not own the piece
    - 404: Art not found
    - 409: Piece has an active listing
    - 500: Object storage refused the delete
    """
    store = ArtStore(db, storage=storage)
    await store.delete(art_id, current_user)
    return SuccessResponse()
