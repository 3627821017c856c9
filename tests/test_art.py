from app.domains.art.models import ArtPiece
from app.domains.marketplace.models import LISTING_SOLD, MarketplaceListing

OWNER = "rArtOwner11111111111111111111111"
STRANGER = "rStranger1111111111111111111111"


def test_gallery_is_paginated_newest_first(client, login, make_art):
    user = login(OWNER)
    for i in range(3):
        make_art(user, title=f"piece {i}")

    first = client.get("/api/art", params={"page": 1, "limit": 2}).json()
    second = client.get("/api/art", params={"page": 2, "limit": 2}).json()

    assert first["total"] == 3
    assert first["hasMore"] is True
    assert [a["title"] for a in first["data"]] == ["piece 2", "piece 1"]
    assert second["hasMore"] is False
    assert [a["title"] for a in second["data"]] == ["piece 0"]


def test_gallery_rejects_page_zero(client):
    resp = client.get("/api/art", params={"page": 0})

    assert resp.status_code == 400
    assert resp.json()["kind"] == "validation_error"


def test_user_art_lists_only_callers_pieces(client, login, make_art):
    owner = login(OWNER)
    stranger = login(STRANGER)
    make_art(owner, title="mine")
    make_art(stranger, title="theirs")

    resp = client.get("/api/art/user", headers=owner["headers"])

    assert [a["title"] for a in resp.json()] == ["mine"]


def test_get_art_includes_listing_history(client, login, make_art, db):
    owner = login(OWNER)
    art = make_art(owner, minted=True)
    db.add(
        MarketplaceListing(
            user_id=owner["id"],
            art_id=art.id,
            nft_address=art.minted_nft_address,
            price=2,
            status=LISTING_SOLD,
        )
    )
    db.commit()

    resp = client.get(f"/api/art/{art.id}")

    assert resp.status_code == 200
    assert resp.json()["listings"][0]["status"] == "sold"


def test_get_missing_art(client):
    resp = client.get("/api/art/999")

    assert resp.status_code == 404
    assert resp.json() == {"kind": "not_found", "message": "Art not found"}


def test_delete_removes_blob_then_row(client, login, make_art, storage, db):
    owner = login(OWNER)
    art = make_art(owner, key="generated/7_1_aaaa.png")
    art_id = art.id

    resp = client.delete(f"/api/art/{art_id}", headers=owner["headers"])

    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    assert storage.deleted == ["generated/7_1_aaaa.png"]
    assert db.query(ArtPiece).filter(ArtPiece.id == art_id).first() is None


def test_delete_by_non_owner_is_forbidden(client, login, make_art, storage):
    owner = login(OWNER)
    stranger = login(STRANGER)
    art = make_art(owner)

    resp = client.delete(f"/api/art/{art.id}", headers=stranger["headers"])

    assert resp.status_code == 403
    assert resp.json()["kind"] == "forbidden"
    assert storage.deleted == []


def test_delete_keeps_row_when_storage_fails(client, login, make_art, storage, db):
    owner = login(OWNER)
    art = make_art(owner)
    storage.fail_delete = True

    resp = client.delete(f"/api/art/{art.id}", headers=owner["headers"])

    assert resp.status_code == 500
    assert resp.json()["kind"] == "storage_error"
    assert db.query(ArtPiece).count() == 1


def test_delete_refused_while_listed(client, login, make_art):
    owner = login(OWNER)
    art = make_art(owner, minted=True)
    client.post(
        "/api/marketplace/listings",
        json={"art_id": art.id, "price": "1.5"},
        headers=owner["headers"],
    )

    resp = client.delete(f"/api/art/{art.id}", headers=owner["headers"])

    assert resp.status_code == 409
