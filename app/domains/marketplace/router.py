from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.auth.models import User
from app.domains.auth.router import get_current_user
from app.domains.marketplace import schemas
from app.domains.marketplace.service import MarketplaceService
from app.shared.database.connection import get_db
from app.shared.utils.response import Page
from app.shared.xrpl import XRPLService, get_chain_client

router = APIRouter(prefix="/marketplace", tags=["marketplace"])


@router.post(
    "/listings",
    response_model=schemas.ListingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_listing(
    payload: schemas.ListingCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    List a minted art piece for sale

    **Possible errors:**
    - 400: Price not positive, or art not minted
    - 403: Caller does not own the art
    - 404: Art not found
    - 409: Art already has an active listing
    """
    service = MarketplaceService(db)
    return service.create_listing(
        current_user, payload.art_id, payload.price, payload.token_account
    )


@router.get("/listings", response_model=Page[schemas.ListingResponse])
def list_listings(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    """Active listings with their art, newest first"""
    service = MarketplaceService(db)
    return service.list_active(page=page, limit=limit)


@router.get("/listings/{listing_id}", response_model=schemas.ListingResponse)
def get_listing(listing_id: int, db: Session = Depends(get_db)):
    service = MarketplaceService(db)
    return service.get_listing(listing_id)


@router.post("/listings/{listing_id}/cancel", response_model=schemas.ListingResponse)
def cancel_listing(
    listing_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Withdraw an active listing (seller only)"""
    service = MarketplaceService(db)
    return service.cancel_listing(current_user, listing_id)


@router.post("/purchase/{listing_id}", response_model=schemas.PurchaseResponse)
def purchase_listing(
    listing_id: int,
    payload: Optional[schemas.PurchaseRequest] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    chain: XRPLService = Depends(get_chain_client),
):
    """
    Purchase a listing and take ownership of its art

    **Possible errors:**
    - 400: Own listing, or payment transaction missing/unconfirmed
    - 404: Listing not found
    - 409: Listing is no longer active
    """
    service = MarketplaceService(db, chain=chain)
    transaction_hash = payload.transaction_hash if payload else None
    listing = service.purchase(current_user, listing_id, transaction_hash)
    return schemas.PurchaseResponse(
        listing_id=listing.id,
        art_id=listing.art_id,
        new_owner=current_user.wallet_address,
    )
