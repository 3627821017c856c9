import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.config import settings
from app.domains.art.models import ArtPiece
from app.domains.art.service import ArtStore
from app.domains.auth.models import User
from app.domains.marketplace.models import (
    LISTING_ACTIVE,
    LISTING_CANCELED,
    LISTING_SOLD,
    MarketplaceListing,
)
from app.shared.errors import (
    AlreadyListedError,
    ConflictError,
    ListingNotActiveError,
    NotFoundError,
    NotMintedError,
    ValidationError,
)
from app.shared.guards import authorize
from app.shared.utils.response import paginate

logger = logging.getLogger(__name__)


class MarketplaceService:
    def __init__(self, db: Session, chain=None):
        self.db = db
        self.chain = chain

    def create_listing(
        self,
        user: User,
        art_id: int,
        price: Decimal,
        token_account: Optional[str] = None,
    ) -> MarketplaceListing:
        """List a minted piece owned by ``user`` for sale."""
        if price is None or price <= 0:
            raise ValidationError("Price must be positive")

        store = ArtStore(self.db)
        art = store.get_owned(art_id, user)
        if not art.is_minted:
            raise NotMintedError("Art must be minted before it can be listed")
        if store.has_active_listing(art.id):
            raise AlreadyListedError()

        listing = MarketplaceListing(
            user_id=user.id,
            art_id=art.id,
            nft_address=art.minted_nft_address,
            price=price,
            status=LISTING_ACTIVE,
            token_account=token_account,
        )
        self.db.add(listing)
        try:
            self.db.commit()
        except IntegrityError:
            # Partial unique index: another active listing won the race
            self.db.rollback()
            raise AlreadyListedError()

        self.db.refresh(listing)
        logger.info("User %s listed art %s at %s", user.id, art.id, price)
        return listing

    def list_active(self, page: int = 1, limit: int = 12) -> dict:
        query = (
            self.db.query(MarketplaceListing)
            .options(joinedload(MarketplaceListing.art))
            .filter(MarketplaceListing.status == LISTING_ACTIVE)
            .order_by(MarketplaceListing.created_at.desc(), MarketplaceListing.id.desc())
        )
        return paginate(query, page, limit)

    def get_listing(self, listing_id: int) -> MarketplaceListing:
        listing = (
            self.db.query(MarketplaceListing)
            .filter(MarketplaceListing.id == listing_id)
            .first()
        )
        if not listing:
            raise NotFoundError("Listing not found")
        return listing

    def cancel_listing(self, user: User, listing_id: int) -> MarketplaceListing:
        listing = self.get_listing(listing_id)
        authorize(user, listing, message="Only the seller can cancel this listing")

        result = self.db.execute(
            update(MarketplaceListing)
            .where(
                MarketplaceListing.id == listing_id,
                MarketplaceListing.status == LISTING_ACTIVE,
            )
            .values(status=LISTING_CANCELED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            raise ListingNotActiveError()
        self.db.commit()

        self.db.refresh(listing)
        logger.info("Listing %s canceled by user %s", listing_id, user.id)
        return listing

    def purchase(
        self, buyer: User, listing_id: int, transaction_hash: Optional[str] = None
    ) -> MarketplaceListing:
        """
        Buy an active listing.

        The buyer pays on-chain first; when confirmation is required the
        transaction is checked before anything is written. Listing status
        and art ownership then change in a single database transaction.
        """
        listing = self.get_listing(listing_id)
        if listing.status != LISTING_ACTIVE:
            raise ListingNotActiveError()
        if listing.user_id == buyer.id:
            raise ValidationError("You cannot purchase your own listing")

        if settings.require_purchase_confirmation:
            if not transaction_hash:
                raise ValidationError("Purchase transaction hash is required")
            seller = self.db.query(User).filter(User.id == listing.user_id).one()
            self.chain.confirm_purchase(
                transaction_hash, buyer.wallet_address, seller.wallet_address, listing.price
            )

        seller_id = listing.user_id
        art_id = listing.art_id
        try:
            result = self.db.execute(
                update(MarketplaceListing)
                .where(
                    MarketplaceListing.id == listing_id,
                    MarketplaceListing.status == LISTING_ACTIVE,
                )
                .values(
                    status=LISTING_SOLD,
                    buyer_id=buyer.id,
                    purchase_transaction_hash=transaction_hash,
                    sold_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise ListingNotActiveError()

            result = self.db.execute(
                update(ArtPiece)
                .where(ArtPiece.id == art_id, ArtPiece.user_id == seller_id)
                .values(user_id=buyer.id, owner_wallet=buyer.wallet_address)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise ConflictError("Seller no longer owns this art")

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Transaction hash already used for another purchase")

        self.db.refresh(listing)
        if listing.art is not None:
            self.db.refresh(listing.art)
        logger.info(
            "Listing %s sold: art %s from user %s to user %s",
            listing_id, art_id, seller_id, buyer.id,
        )
        return listing
