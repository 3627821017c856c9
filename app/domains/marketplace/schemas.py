from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.domains.art.schemas import ArtListingResponse, ArtResponse


class ListingCreateRequest(BaseModel):
    art_id: int
    price: Decimal = Field(..., gt=0, description="Price in the chain-native unit")
    token_account: Optional[str] = Field(None, max_length=128)


class ListingResponse(ArtListingResponse):
    art: Optional[ArtResponse] = None


class PurchaseRequest(BaseModel):
    transaction_hash: Optional[str] = Field(
        None, max_length=255, description="Buyer's on-chain purchase transaction"
    )


class PurchaseResponse(BaseModel):
    success: bool = True
    listing_id: int
    art_id: Optional[int]
    new_owner: str
