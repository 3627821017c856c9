import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.art.models import ArtPiece
from app.domains.art.service import ArtStore
from app.domains.auth.models import User
from app.domains.credits.service import CreditLedger
from app.shared.errors import InsufficientCreditsError, ValidationError
from app.shared.replicate_client import ReplicateClient
from app.shared.storage import ObjectStorage

logger = logging.getLogger(__name__)


class GenerationService:
    """
    Generate an image and charge for it.

    The model runs before any credits move, so a failed generation costs
    nothing. Once the art row exists the debit is keyed by its id; if the
    charge cannot be made the art and its blob are removed again.
    """

    def __init__(self, db: Session, model: ReplicateClient, storage: ObjectStorage):
        self.db = db
        self.model = model
        self.ledger = CreditLedger(db)
        self.store = ArtStore(db, storage=storage)

    async def generate(self, user: User, prompt: str) -> ArtPiece:
        prompt = prompt.strip()
        if not prompt:
            raise ValidationError("Prompt is required")

        cost = settings.generation_cost
        self.ledger.require_balance(user.id, cost)

        image_url = await self.model.generate_image(prompt)
        image_bytes, content_type = await self.model.download_image(image_url)
        art = await self.store.create(user, prompt, image_bytes, content_type)

        try:
            self._charge(user, art, cost)
        except (InsufficientCreditsError, SQLAlchemyError):
            await self._compensate(art)
            raise

        self.db.refresh(art)
        logger.info("User %s generated art %s for %s credits", user.id, art.id, cost)
        return art

    def _charge(self, user: User, art: ArtPiece, cost: int) -> None:
        key = f"generation:{art.id}"
        reason = f"Image generation (art {art.id})"
        try:
            self.ledger.debit(user.id, cost, reason, idempotency_key=key)
        except SQLAlchemyError:
            logger.warning("Debit %s failed, replaying once", key, exc_info=True)
            self.db.rollback()
            self.ledger.debit(user.id, cost, reason, idempotency_key=key)

    async def _compensate(self, art: ArtPiece) -> None:
        # A failed debit can leave the session mid-transaction
        self.db.rollback()
        art_id = art.id
        try:
            await self.store.discard(art)
        except Exception:
            self.db.rollback()
            logger.exception("Failed to remove art %s after a failed charge", art_id)
