from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.shared.database.connection import Base


class ArtPiece(Base):
    __tablename__ = "art"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # current owner
    title = Column(String(1000), nullable=False)                # generation prompt
    description = Column(Text, nullable=True)
    image_url = Column(String(1000), nullable=False)            # public object-storage URL
    storage_key = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    is_minted = Column(Boolean, nullable=False, default=False)
    minted_nft_address = Column(String(128), nullable=True)     # set once, never cleared
    minted_token_uri = Column(String(1000), nullable=True)
    creator_wallet = Column(String(128), nullable=False)
    owner_wallet = Column(String(128), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(is_minted AND minted_nft_address IS NOT NULL)"
            " OR (NOT is_minted AND minted_nft_address IS NULL)",
            name="ck_art_mint_state",
        ),
    )

    owner = relationship("User", back_populates="art")
    listings = relationship(
        "MarketplaceListing",
        back_populates="art",
        order_by="desc(MarketplaceListing.id)",
    )
