from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.domains.art.schemas import ArtResponse
from app.domains.auth.models import User
from app.domains.auth.router import get_current_user
from app.domains.nfts import schemas
from app.domains.nfts.service import MintService
from app.shared.database.connection import get_db
from app.shared.errors import ValidationError
from app.shared.xrpl import XRPLService, get_chain_client

router = APIRouter(prefix="/nft", tags=["NFTs"])


@router.post("/mint", response_model=schemas.MintResponse)
def prepare_mint(
    payload: schemas.MintRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Prepare token metadata for client-side minting

    The server never signs; the wallet mints with the returned metadata.

    **Possible errors:**
    - 403: Caller does not own the art
    - 404: Art not found
    - 409: Art already minted
    """
    service = MintService(db)
    return service.prepare_mint(current_user, payload.art_id)


@router.post("/mint/{art_id}", response_model=schemas.MintResponse)
def prepare_mint_by_path(
    art_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    service = MintService(db)
    return service.prepare_mint(current_user, art_id)


def _record_mint(
    art_id, payload: schemas.MintUpdateRequest, user: User, db: Session, chain
):
    if art_id is None:
        raise ValidationError("art_id is required")
    service = MintService(db, chain=chain)
    return service.record_mint(
        user,
        art_id,
        payload.minted_nft_address,
        payload.minted_token_uri,
        payload.mint_transaction_hash,
    )


@router.post("/update", response_model=ArtResponse)
def record_mint(
    payload: schemas.MintUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    chain: XRPLService = Depends(get_chain_client),
):
    """
    Record a completed mint on the art piece

    **Possible errors:**
    - 400: Missing address, or mint transaction does not match it
    - 403: Caller does not own the art
    - 404: Art not found
    - 409: Art already minted
    """
    return _record_mint(payload.art_id, payload, current_user, db, chain)


@router.post("/update/{art_id}", response_model=ArtResponse)
def record_mint_by_path(
    art_id: int,
    payload: schemas.MintUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    chain: XRPLService = Depends(get_chain_client),
):
    return _record_mint(art_id, payload, current_user, db, chain)
