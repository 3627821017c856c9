import os

# Must be set before the app (and its engine) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STORAGE_URL"] = "https://storage.test"

import pytest
from fastapi.testclient import TestClient

from app.core import models  # noqa: F401
from app.domains.art.models import ArtPiece
from app.domains.credits.models import CreditAccount
from app.main import app
from app.shared.database.connection import Base, SessionLocal, engine, get_db
from app.shared.errors import StorageError
from app.shared.replicate_client import get_replicate_client
from app.shared.storage import get_storage
from app.shared.xrpl import get_chain_client

FAKE_IMAGE_URL = "https://replicate.delivery/fake/output.png"


class FakeImageModel:
    def __init__(self):
        self.prompts = []
        self.chats = []
        self.error = None

    async def generate_image(self, prompt):
        if self.error:
            raise self.error
        self.prompts.append(prompt)
        return FAKE_IMAGE_URL

    async def download_image(self, url):
        return b"\x89PNG fake image", "image/png"

    async def chat(self, prompt, system_prompt):
        if self.error:
            raise self.error
        self.chats.append((prompt, system_prompt))
        return "Hello from inside the picture!"


class FakeStorage:
    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_delete = False

    def public_url(self, key):
        return f"https://storage.test/storage/v1/object/public/images/{key}"

    async def upload(self, key, data, content_type="image/png"):
        self.objects[key] = data
        return self.public_url(key)

    async def delete(self, key):
        if self.fail_delete:
            raise StorageError("delete refused")
        self.deleted.append(key)
        self.objects.pop(key, None)


class FakeChain:
    def __init__(self):
        self.verified = []
        self.purchases = []
        self.payments = []
        self.minted = {}
        self.error = None

    def verify_transaction(self, tx_hash):
        if self.error:
            raise self.error
        self.verified.append(tx_hash)
        return {"validated": True, "meta": {"TransactionResult": "tesSUCCESS"}}

    def confirm_payment(self, tx_hash, sender, destination, min_amount):
        if self.error:
            raise self.error
        self.payments.append((tx_hash, sender, destination, min_amount))
        return {"validated": True}

    def confirm_purchase(self, tx_hash, buyer_wallet, seller_wallet, price):
        if self.error:
            raise self.error
        self.purchases.append((tx_hash, buyer_wallet, seller_wallet, price))
        return {"validated": True}

    def minted_token_id(self, tx_hash):
        if self.error:
            raise self.error
        return self.minted.get(tx_hash)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def image_model():
    return FakeImageModel()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def client(db, image_model, storage, chain):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_replicate_client] = lambda: image_model
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_chain_client] = lambda: chain
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client, db):
    """Register a wallet through the API and optionally fund it."""

    def _login(wallet_address, credits=0):
        resp = client.post("/api/auth", json={"wallet_address": wallet_address})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        if credits:
            db.query(CreditAccount).filter(
                CreditAccount.user_id == body["user"]["id"]
            ).update({"credits_balance": credits})
            db.commit()
        return {
            "id": body["user"]["id"],
            "wallet": wallet_address,
            "token": body["access_token"],
            "headers": {"Authorization": f"Bearer {body['access_token']}"},
        }

    return _login


@pytest.fixture
def make_art(db):
    def _make_art(user, title="a tiny castle", minted=False, key="generated/1_1_abc.png"):
        art = ArtPiece(
            user_id=user["id"],
            title=title,
            image_url=f"https://storage.test/storage/v1/object/public/images/{key}",
            storage_key=key,
            is_minted=minted,
            minted_nft_address="rNFT" + title.replace(" ", "") if minted else None,
            creator_wallet=user["wallet"],
            owner_wallet=user["wallet"],
        )
        db.add(art)
        db.commit()
        db.refresh(art)
        return art

    return _make_art
