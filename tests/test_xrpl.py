from decimal import Decimal
from unittest.mock import Mock

import httpx
import pytest
from xrpl.models.response import Response, ResponseStatus

from app.shared.errors import ChainError, UpstreamTimeoutError, ValidationError
from app.shared.xrpl import XRPLService

BUYER = "rBuyer111111111111111111111111111"
SELLER = "rSeller11111111111111111111111111"
PRICE = Decimal("2.5")


def _service(result, status=ResponseStatus.SUCCESS):
    service = XRPLService("https://xrpl.test:51234/")
    service.client = Mock()
    service.client.request.return_value = Response(status=status, result=result)
    return service


def _validated(**fields):
    return {
        "validated": True,
        "meta": {"TransactionResult": "tesSUCCESS", **fields.pop("meta", {})},
        "tx_json": {"Account": BUYER, **fields},
    }


def _payment(**fields):
    payment = {
        "TransactionType": "Payment",
        "Destination": SELLER,
        "Amount": "2500000",
    }
    payment.update(fields)
    return _validated(**payment)


def test_confirm_purchase_accepts_buyer_payment():
    service = _service(_payment())

    result = service.confirm_purchase("PAYTX", BUYER, SELLER, PRICE)

    assert result["validated"] is True
    request = service.client.request.call_args[0][0]
    assert request.transaction == "PAYTX"


def test_confirm_purchase_rejects_other_sender():
    service = _service(_payment())

    with pytest.raises(ValidationError, match="paying wallet"):
        service.confirm_purchase("PAYTX", "rSomeoneElse", SELLER, PRICE)


def test_confirm_purchase_rejects_payment_to_another_wallet():
    service = _service(_payment(Destination="rSomeoneElse"))

    with pytest.raises(ValidationError, match="wrong wallet") as exc_info:
        service.confirm_purchase("PAYTX", BUYER, SELLER, PRICE)
    assert exc_info.value.details == {"expected": SELLER, "found": "rSomeoneElse"}


def test_confirm_purchase_rejects_underpayment():
    service = _service(_payment(Amount="1"))

    with pytest.raises(ValidationError, match="too low") as exc_info:
        service.confirm_purchase("PAYTX", BUYER, SELLER, PRICE)
    assert exc_info.value.details == {"required": "2.5", "paid": "0.000001"}


def test_confirm_purchase_rejects_non_payment_transaction():
    service = _service(_validated(TransactionType="AccountSet"))

    with pytest.raises(ValidationError, match="not a payment"):
        service.confirm_purchase("PAYTX", BUYER, SELLER, PRICE)


def test_confirm_purchase_rejects_issued_currency():
    iou = {"currency": "USD", "issuer": "rIssuer", "value": "1000"}
    service = _service(_payment(Amount=iou))

    with pytest.raises(ValidationError, match="in XRP"):
        service.confirm_purchase("PAYTX", BUYER, SELLER, PRICE)


def test_partial_payment_is_judged_by_delivered_amount():
    service = _service(
        _payment(Amount="100000000", meta={"delivered_amount": "1000"})
    )

    with pytest.raises(ValidationError, match="too low"):
        service.confirm_purchase("PAYTX", BUYER, SELLER, PRICE)


def test_confirm_payment_accepts_overpayment():
    service = _service(_payment(Amount="3000000", Destination="rTreasury"))

    result = service.confirm_payment("DEPTX", BUYER, "rTreasury", Decimal("3"))

    assert result["validated"] is True


def test_unvalidated_transaction_is_rejected():
    service = _service({"validated": False, "tx_json": {"Account": BUYER}})

    with pytest.raises(ValidationError, match="not validated"):
        service.verify_transaction("PAYTX")


def test_failed_transaction_is_rejected():
    service = _service(
        {"validated": True, "meta": {"TransactionResult": "tecUNFUNDED_PAYMENT"}}
    )

    with pytest.raises(ValidationError) as exc_info:
        service.verify_transaction("PAYTX")
    assert exc_info.value.details == {"result": "tecUNFUNDED_PAYMENT"}


def test_missing_transaction():
    service = _service({"error": "txnNotFound"}, status=ResponseStatus.ERROR)

    with pytest.raises(ValidationError, match="not found"):
        service.verify_transaction("NOPE")


def test_other_rpc_errors_are_chain_errors():
    service = _service({"error": "tooBusy"}, status=ResponseStatus.ERROR)

    with pytest.raises(ChainError):
        service.verify_transaction("PAYTX")


def test_timeout_maps_to_upstream_timeout():
    service = _service({})
    service.client.request.side_effect = httpx.ReadTimeout("timed out")

    with pytest.raises(UpstreamTimeoutError):
        service.verify_transaction("PAYTX")


def test_minted_token_id_from_meta():
    service = _service(_validated(meta={"nftoken_id": "00080000ABC"}))

    assert service.minted_token_id("MINTTX") == "00080000ABC"


def test_minted_token_id_from_affected_nodes():
    created = {
        "CreatedNode": {
            "LedgerEntryType": "NFToken",
            "NewFields": {"NFTokenID": "00080000DEF"},
        }
    }
    service = _service(_validated(meta={"AffectedNodes": [created]}))

    assert service.minted_token_id("MINTTX") == "00080000DEF"
