import logging
import uuid

from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.art.service import ArtStore
from app.domains.auth.models import User
from app.domains.chat import schemas
from app.domains.credits.service import CreditLedger
from app.shared.replicate_client import ReplicateClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a friendly pixel-art companion living inside the artwork "
    '"{title}". Stay in character and answer in a few short sentences.'
)


class ChatService:
    def __init__(self, db: Session, model: ReplicateClient):
        self.db = db
        self.model = model
        self.ledger = CreditLedger(db)

    async def send_message(self, user: User, art_id: int, message: str) -> schemas.ChatResponse:
        """Reply as the companion of an owned art piece; charged per message."""
        art = ArtStore(self.db).get_owned(art_id, user)

        cost = settings.chat_message_cost
        self.ledger.require_balance(user.id, cost)

        reply = await self.model.chat(message, SYSTEM_PROMPT.format(title=art.title))

        self.ledger.debit(
            user.id,
            cost,
            f"Chat message (art {art.id})",
            idempotency_key=f"chat:{uuid.uuid4().hex}",
        )
        return schemas.ChatResponse(
            reply=reply, credits_balance=self.ledger.get_balance(user.id)
        )
