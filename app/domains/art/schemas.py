from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ArtResponse(BaseModel):
    """Art piece response schema"""
    id: int
    user_id: int = Field(..., description="Current owner user id")
    title: str = Field(..., description="Title (the generation prompt)")
    description: Optional[str] = None
    image_url: str = Field(..., description="Public object-storage URL")
    created_at: datetime
    is_minted: bool
    minted_nft_address: Optional[str] = None
    minted_token_uri: Optional[str] = None
    creator_wallet: str
    owner_wallet: str

    class Config:
        from_attributes = True


class ArtListingResponse(BaseModel):
    """Marketplace listing fields, without the embedded art"""
    id: int
    user_id: int = Field(..., description="Seller user id")
    art_id: Optional[int] = None
    nft_address: str
    price: Decimal
    status: str = Field(..., description="active / sold / canceled")
    token_account: Optional[str] = None
    buyer_id: Optional[int] = None
    created_at: datetime
    sold_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ArtDetailResponse(ArtResponse):
    listings: List[ArtListingResponse] = Field(default_factory=list)
