from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.domains.auth.models import User
from app.domains.auth.router import get_current_user
from app.domains.credits import schemas
from app.domains.credits.service import CreditLedger
from app.shared.database.connection import get_db
from app.shared.xrpl import XRPLService, get_chain_client

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/balance", response_model=schemas.CreditsBalanceResponse)
def get_balance(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Current credit balance (0 when the account row is missing)"""
    ledger = CreditLedger(db)
    return {"credits_balance": ledger.get_balance(current_user.id)}


@router.post("/deposit", response_model=schemas.DepositResponse)
def deposit_credits(
    payload: schemas.DepositRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    chain: XRPLService = Depends(get_chain_client),
):
    """
    Credit a token deposit, once per transaction hash

    **Possible errors:**
    - 400: Non-positive amount, missing hash, or payment does not cover the credits
    - 409: Hash already used for a different deposit
    """
    ledger = CreditLedger(db, chain=chain)
    _, created = ledger.deposit(
        current_user.id,
        payload.amount,
        payload.transaction_hash,
        sender_wallet=current_user.wallet_address,
    )
    return schemas.DepositResponse(duplicate=not created)


@router.get("/transactions", response_model=List[schemas.CreditTransactionResponse])
def list_transactions(
    limit: int = Query(10, ge=1),
    before: Optional[int] = Query(None, description="Return rows older than this id"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Recent credit transactions, newest first"""
    ledger = CreditLedger(db)
    return ledger.list_transactions(current_user.id, limit=limit, before=before)


@router.get("/costs", response_model=schemas.CreditCostsResponse)
def get_costs():
    """Credits charged per action"""
    return schemas.CreditCostsResponse(
        generation=settings.generation_cost,
        chat_message=settings.chat_message_cost,
    )
