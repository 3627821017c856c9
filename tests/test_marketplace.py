from decimal import Decimal

import pytest

from app.core.config import settings
from app.domains.art.models import ArtPiece
from app.domains.marketplace.models import MarketplaceListing
from app.shared.errors import ValidationError

SELLER = "rSeller11111111111111111111111111"
BUYER = "rBuyer111111111111111111111111111"
THIRD = "rThird111111111111111111111111111"


@pytest.fixture
def listed(client, login, make_art):
    seller = login(SELLER)
    buyer = login(BUYER)
    art = make_art(seller, minted=True)
    resp = client.post(
        "/api/marketplace/listings",
        json={"art_id": art.id, "price": "2.5", "token_account": "rTokenAcct"},
        headers=seller["headers"],
    )
    assert resp.status_code == 201, resp.text
    return {"seller": seller, "buyer": buyer, "art": art, "listing": resp.json()}


def test_create_listing(listed):
    listing = listed["listing"]

    assert listing["status"] == "active"
    assert Decimal(listing["price"]) == Decimal("2.5")
    assert listing["nft_address"] == listed["art"].minted_nft_address
    assert listing["user_id"] == listed["seller"]["id"]


def test_unminted_art_cannot_be_listed(client, login, make_art):
    seller = login(SELLER)
    art = make_art(seller)

    resp = client.post(
        "/api/marketplace/listings",
        json={"art_id": art.id, "price": "1"},
        headers=seller["headers"],
    )

    assert resp.status_code == 400
    assert resp.json()["kind"] == "not_minted"


def test_non_owner_cannot_list(client, login, make_art):
    seller = login(SELLER)
    other = login(THIRD)
    art = make_art(seller, minted=True)

    resp = client.post(
        "/api/marketplace/listings",
        json={"art_id": art.id, "price": "1"},
        headers=other["headers"],
    )

    assert resp.status_code == 403


@pytest.mark.parametrize("price", ["0", "-1"])
def test_price_must_be_positive(client, login, make_art, price):
    seller = login(SELLER)
    art = make_art(seller, minted=True)

    resp = client.post(
        "/api/marketplace/listings",
        json={"art_id": art.id, "price": price},
        headers=seller["headers"],
    )

    assert resp.status_code == 400


def test_second_active_listing_conflicts(client, listed):
    resp = client.post(
        "/api/marketplace/listings",
        json={"art_id": listed["art"].id, "price": "3"},
        headers=listed["seller"]["headers"],
    )

    assert resp.status_code == 409
    assert resp.json()["kind"] == "already_listed"


def test_active_listings_embed_art(client, listed):
    page = client.get("/api/marketplace/listings").json()

    assert page["total"] == 1
    assert page["hasMore"] is False
    assert page["data"][0]["art"]["id"] == listed["art"].id


def test_purchase_transfers_ownership(client, listed, chain, db):
    listing_id = listed["listing"]["id"]
    buyer = listed["buyer"]

    resp = client.post(
        f"/api/marketplace/purchase/{listing_id}",
        json={"transaction_hash": "PAYTX"},
        headers=buyer["headers"],
    )

    assert resp.status_code == 200, resp.text
    assert resp.json() == {
        "success": True,
        "listing_id": listing_id,
        "art_id": listed["art"].id,
        "new_owner": BUYER,
    }
    assert chain.purchases == [("PAYTX", BUYER, SELLER, Decimal("2.5"))]

    listing = db.query(MarketplaceListing).filter(MarketplaceListing.id == listing_id).one()
    assert listing.status == "sold"
    assert listing.buyer_id == buyer["id"]
    assert listing.purchase_transaction_hash == "PAYTX"
    assert listing.sold_at is not None
    art = db.query(ArtPiece).filter(ArtPiece.id == listed["art"].id).one()
    assert art.user_id == buyer["id"]
    assert art.owner_wallet == BUYER
    assert art.creator_wallet == SELLER

    assert client.get("/api/marketplace/listings").json()["total"] == 0


def test_second_purchase_is_rejected(client, listed, login):
    listing_id = listed["listing"]["id"]
    third = login(THIRD)
    client.post(
        f"/api/marketplace/purchase/{listing_id}",
        json={"transaction_hash": "PAYTX"},
        headers=listed["buyer"]["headers"],
    )

    resp = client.post(
        f"/api/marketplace/purchase/{listing_id}",
        json={"transaction_hash": "PAYTX2"},
        headers=third["headers"],
    )

    assert resp.status_code == 409
    assert resp.json()["kind"] == "listing_not_active"


def test_seller_cannot_buy_own_listing(client, listed):
    resp = client.post(
        f"/api/marketplace/purchase/{listed['listing']['id']}",
        json={"transaction_hash": "PAYTX"},
        headers=listed["seller"]["headers"],
    )

    assert resp.status_code == 400


def test_purchase_requires_confirmed_payment(client, listed, chain, db):
    listing_id = listed["listing"]["id"]
    chain.error = ValidationError("Payment was sent to the wrong wallet")

    missing = client.post(
        f"/api/marketplace/purchase/{listing_id}", headers=listed["buyer"]["headers"]
    )
    unconfirmed = client.post(
        f"/api/marketplace/purchase/{listing_id}",
        json={"transaction_hash": "PAYTX"},
        headers=listed["buyer"]["headers"],
    )

    assert missing.status_code == 400
    assert missing.json()["message"] == "Purchase transaction hash is required"
    assert unconfirmed.status_code == 400
    listing = db.query(MarketplaceListing).filter(MarketplaceListing.id == listing_id).one()
    assert listing.status == "active"


def test_purchase_without_confirmation_when_disabled(client, listed, chain, monkeypatch):
    monkeypatch.setattr(settings, "require_purchase_confirmation", False)

    resp = client.post(
        f"/api/marketplace/purchase/{listed['listing']['id']}",
        headers=listed["buyer"]["headers"],
    )

    assert resp.status_code == 200
    assert chain.purchases == []


def test_purchase_unknown_listing(client, login):
    buyer = login(BUYER)

    resp = client.post(
        "/api/marketplace/purchase/999",
        json={"transaction_hash": "PAYTX"},
        headers=buyer["headers"],
    )

    assert resp.status_code == 404


def test_cancel_listing(client, listed):
    listing_id = listed["listing"]["id"]

    forbidden = client.post(
        f"/api/marketplace/listings/{listing_id}/cancel",
        headers=listed["buyer"]["headers"],
    )
    canceled = client.post(
        f"/api/marketplace/listings/{listing_id}/cancel",
        headers=listed["seller"]["headers"],
    )
    again = client.post(
        f"/api/marketplace/listings/{listing_id}/cancel",
        headers=listed["seller"]["headers"],
    )

    assert forbidden.status_code == 403
    assert canceled.json()["status"] == "canceled"
    assert again.status_code == 409


def test_art_can_be_relisted_after_cancel(client, listed):
    client.post(
        f"/api/marketplace/listings/{listed['listing']['id']}/cancel",
        headers=listed["seller"]["headers"],
    )

    resp = client.post(
        "/api/marketplace/listings",
        json={"art_id": listed["art"].id, "price": "4"},
        headers=listed["seller"]["headers"],
    )

    assert resp.status_code == 201
