import logging
import time
import uuid
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.art.models import ArtPiece
from app.domains.auth.models import User
from app.domains.marketplace.models import LISTING_ACTIVE, MarketplaceListing
from app.shared.errors import (
    AlreadyMintedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.shared.guards import authorize
from app.shared.storage import ObjectStorage
from app.shared.utils.response import paginate

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/gif": "gif",
}


class ArtStore:
    def __init__(self, db: Session, storage: Optional[ObjectStorage] = None):
        self.db = db
        self.storage = storage

    def _new_storage_key(self, user_id: int, content_type: str) -> str:
        ext = EXTENSIONS.get(content_type, "png")
        stamp = int(time.time() * 1000)
        return f"{settings.storage_prefix}/{user_id}_{stamp}_{uuid.uuid4().hex[:8]}.{ext}"

    def _storage_key(self, art: ArtPiece) -> str:
        if art.storage_key:
            return art.storage_key
        # Rows created before keys were stored: derive from the public URL
        filename = art.image_url.rstrip("/").split("/")[-1]
        return f"{settings.storage_prefix}/{filename}"

    async def create(
        self,
        user: User,
        title: str,
        image_bytes: bytes,
        content_type: str = "image/png",
        description: Optional[str] = None,
    ) -> ArtPiece:
        """Upload the image, then insert the row pointing at it."""
        key = self._new_storage_key(user.id, content_type)
        image_url = await self.storage.upload(key, image_bytes, content_type)

        art = ArtPiece(
            user_id=user.id,
            title=title,
            description=description,
            image_url=image_url,
            storage_key=key,
            is_minted=False,
            creator_wallet=user.wallet_address,
            owner_wallet=user.wallet_address,
        )
        self.db.add(art)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            await self._discard_blob(key)
            raise
        self.db.refresh(art)
        return art

    async def _discard_blob(self, key: str) -> None:
        try:
            await self.storage.delete(key)
        except Exception:
            logger.exception("Failed to remove orphaned blob %s", key)

    def list_all(self, page: int = 1, limit: int = 12) -> dict:
        query = self.db.query(ArtPiece).order_by(
            ArtPiece.created_at.desc(), ArtPiece.id.desc()
        )
        return paginate(query, page, limit)

    def list_by_owner(self, user_id: int) -> List[ArtPiece]:
        return (
            self.db.query(ArtPiece)
            .filter(ArtPiece.user_id == user_id)
            .order_by(ArtPiece.created_at.desc(), ArtPiece.id.desc())
            .all()
        )

    def get(self, art_id: int) -> ArtPiece:
        art = self.db.query(ArtPiece).filter(ArtPiece.id == art_id).first()
        if not art:
            raise NotFoundError("Art not found")
        return art

    def get_owned(self, art_id: int, user: User) -> ArtPiece:
        art = self.get(art_id)
        authorize(user, art)
        return art

    def has_active_listing(self, art_id: int) -> bool:
        return (
            self.db.query(MarketplaceListing.id)
            .filter(
                MarketplaceListing.art_id == art_id,
                MarketplaceListing.status == LISTING_ACTIVE,
            )
            .first()
            is not None
        )

    async def delete(self, art_id: int, user: User) -> None:
        """
        Delete an art piece (owner only).

        The blob goes first; if storage fails the row is left untouched.
        """
        art = self.get_owned(art_id, user)
        if self.has_active_listing(art.id):
            raise ConflictError("Cancel the active listing before deleting this art")

        await self.storage.delete(self._storage_key(art))

        self.db.delete(art)
        self.db.commit()
        logger.info("User %s deleted art %s", user.id, art_id)

    async def discard(self, art: ArtPiece) -> None:
        """Remove a just-created piece and its blob (generation rollback)."""
        key = self._storage_key(art)
        self.db.delete(art)
        self.db.commit()
        await self._discard_blob(key)

    def update_mint_info(
        self, art_id: int, user: User, mint_address: str, token_uri: Optional[str]
    ) -> ArtPiece:
        """Record a completed on-chain mint. The mint address is write-once."""
        if not mint_address or not mint_address.strip():
            raise ValidationError("Mint address is required")

        art = self.get_owned(art_id, user)
        if art.is_minted:
            raise AlreadyMintedError()

        result = self.db.execute(
            update(ArtPiece)
            .where(
                ArtPiece.id == art_id,
                ArtPiece.user_id == user.id,
                ArtPiece.is_minted.is_(False),
            )
            .values(
                is_minted=True,
                minted_nft_address=mint_address,
                minted_token_uri=token_uri,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            # Lost a race: re-read to report the accurate reason
            self.get_owned(art_id, user)
            raise AlreadyMintedError()
        self.db.commit()

        art = self.get(art_id)
        self.db.refresh(art)
        logger.info("Art %s minted as %s", art_id, mint_address)
        return art
