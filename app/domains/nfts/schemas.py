from typing import List, Optional

from pydantic import BaseModel, Field

from app.domains.art.schemas import ArtResponse


class MintRequest(BaseModel):
    art_id: int


class NFTAttribute(BaseModel):
    trait_type: str
    value: str


class NFTMetadata(BaseModel):
    """Token metadata handed to the wallet for client-side minting"""
    name: str
    symbol: str
    description: str
    image: str
    seller_fee_basis_points: int
    attributes: List[NFTAttribute]


class MintResponse(BaseModel):
    art: ArtResponse
    metadata: NFTMetadata


class MintUpdateRequest(BaseModel):
    art_id: Optional[int] = Field(None, description="Required unless given in the path")
    minted_nft_address: str = Field(..., max_length=128)
    minted_token_uri: Optional[str] = Field(None, max_length=1000)
    mint_transaction_hash: Optional[str] = Field(
        None, max_length=255, description="Mint transaction to verify on-chain"
    )
