import logging
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.credits import models
from app.shared.errors import (
    ConflictError,
    DepositError,
    InsufficientCreditsError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class CreditLedger:
    """
    Balance reads and the two balance mutations.

    Each mutation is one database transaction: a conditional UPDATE on the
    account plus the matching CreditTransaction row. The balance is never
    read and then written back.
    """

    def __init__(self, db: Session, chain=None):
        self.db = db
        self.chain = chain

    def get_balance(self, user_id: int) -> int:
        account = (
            self.db.query(models.CreditAccount)
            .filter(models.CreditAccount.user_id == user_id)
            .first()
        )
        if account is None:
            return 0
        return account.credits_balance

    def list_transactions(
        self, user_id: int, limit: int = 10, before: Optional[int] = None
    ) -> List[models.CreditTransaction]:
        """Most recent first; ``before`` is the id of the last row already seen."""
        limit = max(1, min(limit, settings.max_page_size))
        query = self.db.query(models.CreditTransaction).filter(
            models.CreditTransaction.user_id == user_id
        )
        if before is not None:
            query = query.filter(models.CreditTransaction.id < before)
        return query.order_by(models.CreditTransaction.id.desc()).limit(limit).all()

    def _get_by_hash(self, transaction_hash: str) -> Optional[models.CreditTransaction]:
        return (
            self.db.query(models.CreditTransaction)
            .filter(models.CreditTransaction.transaction_hash == transaction_hash)
            .first()
        )

    def _replayed_deposit(
        self, existing: models.CreditTransaction, user_id: int, amount: int
    ) -> models.CreditTransaction:
        if existing.user_id != user_id or existing.amount != amount:
            raise ConflictError(
                "Transaction hash already used for a different deposit",
                details={"transaction_hash": existing.transaction_hash},
            )
        logger.info(
            "Ignoring replayed deposit %s for user %s", existing.transaction_hash, user_id
        )
        return existing

    def _confirm_deposit_payment(
        self, transaction_hash: str, amount: int, sender_wallet: Optional[str]
    ) -> None:
        """The deposit must be an XRP payment to the treasury covering ``amount`` credits."""
        if not settings.deposit_wallet:
            raise DepositError("Deposit wallet is not configured", status_code=500)
        if not sender_wallet:
            raise DepositError("Sender wallet is required to verify the deposit")
        self.chain.confirm_payment(
            transaction_hash,
            sender_wallet,
            settings.deposit_wallet,
            amount * settings.xrp_per_credit,
        )

    def deposit(
        self,
        user_id: int,
        amount: int,
        transaction_hash: str,
        sender_wallet: Optional[str] = None,
    ) -> Tuple[models.CreditTransaction, bool]:
        """
        Credit ``amount`` once per ``transaction_hash``.

        Returns the ledger row and whether this call created it. A replay by
        the same user with the same amount is a no-op.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise DepositError("Amount must be a positive integer")
        if not transaction_hash or not transaction_hash.strip():
            raise DepositError("Transaction hash is required")

        existing = self._get_by_hash(transaction_hash)
        if existing is not None:
            return self._replayed_deposit(existing, user_id, amount), False

        if settings.verify_deposits:
            self._confirm_deposit_payment(transaction_hash, amount, sender_wallet)

        tx = models.CreditTransaction(
            user_id=user_id,
            amount=amount,
            status=models.STATUS_COMPLETED,
            transaction_hash=transaction_hash,
            description="deposit",
        )
        try:
            self.db.add(tx)
            result = self.db.execute(
                update(models.CreditAccount)
                .where(models.CreditAccount.user_id == user_id)
                .values(credits_balance=models.CreditAccount.credits_balance + amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                self.db.add(models.CreditAccount(user_id=user_id, credits_balance=amount))
            self.db.commit()
        except IntegrityError:
            # The unique hash constraint caught a concurrent replay
            self.db.rollback()
            existing = self._get_by_hash(transaction_hash)
            if existing is None:
                logger.exception("Deposit %s failed on integrity error", transaction_hash)
                raise DepositError(status_code=500)
            return self._replayed_deposit(existing, user_id, amount), False
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Deposit %s failed", transaction_hash)
            raise DepositError(status_code=500) from e

        self.db.refresh(tx)
        logger.info("Deposited %s credits for user %s (%s)", amount, user_id, transaction_hash)
        return tx, True

    def debit(
        self,
        user_id: int,
        amount: int,
        reason: str,
        idempotency_key: Optional[str] = None,
    ) -> models.CreditTransaction:
        """
        Atomically spend ``amount`` credits.

        Raises InsufficientCreditsError with no effect when the balance is too
        low. Replaying an ``idempotency_key`` returns the original row.
        """
        if amount <= 0:
            raise ValidationError("Debit amount must be positive")

        if idempotency_key:
            existing = self._get_by_hash(idempotency_key)
            if existing is not None:
                return existing

        try:
            result = self.db.execute(
                update(models.CreditAccount)
                .where(
                    models.CreditAccount.user_id == user_id,
                    models.CreditAccount.credits_balance >= amount,
                )
                .values(credits_balance=models.CreditAccount.credits_balance - amount)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise
        if result.rowcount != 1:
            self.db.rollback()
            raise InsufficientCreditsError(
                "Insufficient credits",
                details={"required": amount, "available": self.get_balance(user_id)},
            )

        tx = models.CreditTransaction(
            user_id=user_id,
            amount=-amount,
            status=models.STATUS_COMPLETED,
            transaction_hash=idempotency_key,
            description=reason,
        )
        self.db.add(tx)
        try:
            self.db.commit()
        except IntegrityError:
            # Same key committed concurrently; our decrement is rolled back with it
            self.db.rollback()
            existing = self._get_by_hash(idempotency_key) if idempotency_key else None
            if existing is None:
                raise
            return existing
        except SQLAlchemyError:
            # Leave the session usable for the caller's retry or compensation
            self.db.rollback()
            raise

        self.db.refresh(tx)
        logger.info("Debited %s credits from user %s for %s", amount, user_id, reason)
        return tx

    def require_balance(self, user_id: int, amount: int) -> int:
        """Pre-check used by cost-gated actions; the debit stays authoritative."""
        balance = self.get_balance(user_id)
        if balance < amount:
            raise InsufficientCreditsError(
                "Insufficient credits",
                details={"required": amount, "available": balance},
            )
        return balance
