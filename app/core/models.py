# Import all models here so Base.metadata sees every table
from app.domains.art.models import ArtPiece
from app.domains.auth.models import User
from app.domains.credits.models import CreditAccount, CreditTransaction
from app.domains.marketplace.models import MarketplaceListing

__all__ = [
    "ArtPiece",
    "CreditAccount",
    "CreditTransaction",
    "MarketplaceListing",
    "User",
]
