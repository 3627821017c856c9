import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from xrpl.clients import JsonRpcClient
from xrpl.constants import XRPLException
from xrpl.models.requests import Tx
from xrpl.utils import drops_to_xrp

from app.core.config import settings
from app.shared.errors import ChainError, UpstreamTimeoutError, ValidationError

logger = logging.getLogger(__name__)


def _tx_fields(tx_result: Dict[str, Any]) -> Dict[str, Any]:
    # API v2 nests the transaction under tx_json, v1 inlines it
    return tx_result.get("tx_json") or tx_result


def _extract_minted_id(tx_result: Dict[str, Any]) -> Optional[str]:
    meta = tx_result.get("meta") or {}
    nft_id = meta.get("nftoken_id")
    if nft_id:
        return nft_id
    for node in meta.get("AffectedNodes") or []:
        created = node.get("CreatedNode") or {}
        if created.get("LedgerEntryType") == "NFToken":
            fields = created.get("NewFields") or {}
            if "NFTokenID" in fields:
                return fields["NFTokenID"]
    return None


def _delivered_drops(tx_result: Dict[str, Any]) -> Optional[str]:
    # delivered_amount accounts for partial payments; Amount/DeliverMax do not
    meta = tx_result.get("meta") or {}
    tx = _tx_fields(tx_result)
    amount = meta.get("delivered_amount")
    if amount is None:
        amount = tx.get("DeliverMax", tx.get("Amount"))
    # Issued currencies come back as objects, XRP as a drops string
    if not isinstance(amount, str) or not amount.isdigit():
        return None
    return amount


class XRPLService:
    """Read-only ledger access; every signing happens in the user's wallet."""

    def __init__(self, rpc_url: Optional[str] = None):
        self.client = JsonRpcClient(rpc_url or settings.xrpl_rpc_url)

    def _request(self, request) -> Dict[str, Any]:
        try:
            response = self.client.request(request)
        except httpx.TimeoutException as e:
            logger.error("XRPL request timed out: %s", e)
            raise UpstreamTimeoutError("Blockchain RPC timed out") from e
        except (httpx.HTTPError, XRPLException) as e:
            logger.error("XRPL request failed: %s", e)
            raise ChainError(str(e)) from e

        result = response.result or {}
        if result.get("error") == "txnNotFound":
            raise ValidationError("Transaction not found on ledger")
        if not response.is_successful():
            raise ChainError("Blockchain request failed", details=result)
        return result

    def verify_transaction(self, tx_hash: str) -> Dict[str, Any]:
        """Return the transaction once it is validated and succeeded."""
        result = self._request(Tx(transaction=tx_hash))
        if not result.get("validated"):
            raise ValidationError("Transaction not validated yet")
        outcome = (result.get("meta") or {}).get("TransactionResult")
        if outcome != "tesSUCCESS":
            raise ValidationError(
                "Transaction failed on ledger", details={"result": outcome}
            )
        return result

    def confirm_payment(
        self,
        tx_hash: str,
        sender: str,
        destination: str,
        min_amount: Decimal,
    ) -> Dict[str, Any]:
        """
        Check that ``tx_hash`` is a validated XRP payment from ``sender`` to
        ``destination`` that delivered at least ``min_amount`` XRP.
        """
        result = self.verify_transaction(tx_hash)
        tx = _tx_fields(result)
        if tx.get("TransactionType") != "Payment":
            raise ValidationError(
                "Transaction is not a payment",
                details={"transaction_type": tx.get("TransactionType")},
            )
        if tx.get("Account") != sender:
            raise ValidationError("Transaction was not sent by the paying wallet")
        if tx.get("Destination") != destination:
            raise ValidationError(
                "Payment was sent to the wrong wallet",
                details={"expected": destination, "found": tx.get("Destination")},
            )

        delivered = _delivered_drops(result)
        if delivered is None:
            raise ValidationError("Payment must be made in XRP")
        paid = drops_to_xrp(delivered)
        if paid < Decimal(min_amount):
            raise ValidationError(
                "Payment amount is too low",
                details={"required": str(min_amount), "paid": str(paid)},
            )
        return result

    def confirm_purchase(
        self, tx_hash: str, buyer_wallet: str, seller_wallet: str, price: Decimal
    ) -> Dict[str, Any]:
        return self.confirm_payment(tx_hash, buyer_wallet, seller_wallet, price)

    def minted_token_id(self, tx_hash: str) -> Optional[str]:
        return _extract_minted_id(self.verify_transaction(tx_hash))


def get_chain_client() -> XRPLService:
    return XRPLService()
