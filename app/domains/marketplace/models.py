from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.shared.database.connection import Base

LISTING_ACTIVE = "active"
LISTING_SOLD = "sold"
LISTING_CANCELED = "canceled"


class MarketplaceListing(Base):
    __tablename__ = "marketplace_listings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # seller
    # Nulled if the art row is later deleted; listings are never hard-deleted
    art_id = Column(Integer, ForeignKey("art.id"), nullable=True, index=True)
    nft_address = Column(String(128), nullable=False)
    price = Column(Numeric(20, 9), nullable=False)  # chain-native unit
    status = Column(String(20), nullable=False, default=LISTING_ACTIVE)
    token_account = Column(String(128), nullable=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    purchase_transaction_hash = Column(String(255), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    sold_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_listing_price_positive"),
        CheckConstraint(
            "status IN ('active', 'sold', 'canceled')", name="ck_listing_status"
        ),
        # At most one active listing per art piece
        Index(
            "uq_listing_active_art",
            "art_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    art = relationship("ArtPiece", back_populates="listings")
