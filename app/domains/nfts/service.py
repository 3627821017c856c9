import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.art.models import ArtPiece
from app.domains.art.schemas import ArtResponse
from app.domains.art.service import ArtStore
from app.domains.auth.models import User
from app.domains.nfts import schemas
from app.shared.errors import AlreadyMintedError, ValidationError

logger = logging.getLogger(__name__)


def build_metadata(art: ArtPiece, user: User) -> schemas.NFTMetadata:
    created = art.created_at.strftime("%Y-%m-%d") if art.created_at else ""
    return schemas.NFTMetadata(
        name=art.title[: settings.nft_name_max_length],
        symbol=settings.nft_symbol,
        description=art.description or f"Pixel Art created by {user.wallet_address}",
        image=art.image_url,
        seller_fee_basis_points=settings.nft_seller_fee_basis_points,
        attributes=[
            schemas.NFTAttribute(trait_type="Creator", value=user.wallet_address),
            schemas.NFTAttribute(trait_type="Created Date", value=created),
        ],
    )


class MintService:
    """
    Two-step mint: the server prepares metadata, the user's wallet signs and
    submits the mint, then the client reports the result back.
    """

    def __init__(self, db: Session, chain=None):
        self.db = db
        self.chain = chain

    def prepare_mint(self, user: User, art_id: int) -> schemas.MintResponse:
        art = ArtStore(self.db).get_owned(art_id, user)
        if art.is_minted:
            raise AlreadyMintedError()
        return schemas.MintResponse(
            art=ArtResponse.model_validate(art), metadata=build_metadata(art, user)
        )

    def record_mint(
        self,
        user: User,
        art_id: int,
        mint_address: str,
        token_uri: Optional[str] = None,
        mint_transaction_hash: Optional[str] = None,
    ) -> ArtPiece:
        store = ArtStore(self.db)
        if mint_transaction_hash:
            # Check ownership and mint state before spending a ledger lookup
            art = store.get_owned(art_id, user)
            if art.is_minted:
                raise AlreadyMintedError()
            token_id = self.chain.minted_token_id(mint_transaction_hash)
            if token_id != mint_address:
                raise ValidationError(
                    "Mint transaction did not produce the reported token",
                    details={"expected": mint_address, "found": token_id},
                )

        art = store.update_mint_info(art_id, user, mint_address, token_uri)
        logger.info("User %s recorded mint for art %s", user.id, art_id)
        return art
