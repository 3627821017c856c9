"""
Small synchronous client for the Pixel Art Studio API.

    client = PixelArtClient("http://localhost:8000")
    client.connect("rWalletAddress...")
    art = client.generate("a tiny castle at dusk")

Every failed call raises ``ApiError`` carrying the server's
``{kind, message, details}`` envelope.
"""
import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"


class ApiError(Exception):
    def __init__(
        self,
        status_code: int,
        kind: str,
        message: str,
        details: Optional[Any] = None,
    ):
        self.status_code = status_code
        self.kind = kind
        self.message = message
        self.details = details
        super().__init__(f"{status_code} {kind}: {message}")

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        return cls(
            response.status_code,
            body.get("kind", "http_error"),
            body.get("message") or response.reason_phrase or "Request failed",
            body.get("details"),
        )


class PixelArtClient:
    api_prefix = "/api"

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http: Optional[httpx.Client] = None,
        timeout: float = 90.0,
    ):
        # Generation waits on the image model, hence the generous default
        self.http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self.state = ConnectionState.DISCONNECTED
        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None

    def __enter__(self) -> "PixelArtClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    def _reset(self) -> None:
        self.token = None
        self.user = None
        self.state = ConnectionState.DISCONNECTED

    def _request(self, method: str, path: str, auth: bool = True, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if auth:
            if self.state != ConnectionState.AUTHENTICATED or not self.token:
                raise ApiError(401, "authentication_error", "Client is not connected")
            headers["Authorization"] = f"Bearer {self.token}"

        response = self.http.request(
            method, f"{self.api_prefix}{path}", headers=headers, **kwargs
        )
        if response.status_code == 401 and auth:
            logger.info("Session rejected by the server; disconnecting")
            self._reset()
        if response.is_error:
            raise ApiError.from_response(response)
        return response.json()

    # Auth

    def connect(self, wallet_address: str) -> Dict[str, Any]:
        """Log in with a wallet address; registers it on first use."""
        self.state = ConnectionState.CONNECTING
        try:
            data = self._request(
                "POST", "/auth", auth=False, json={"wallet_address": wallet_address}
            )
        except (ApiError, httpx.HTTPError):
            self._reset()
            raise
        self.token = data["access_token"]
        self.user = data["user"]
        self.state = ConnectionState.AUTHENTICATED
        return data

    def disconnect(self) -> None:
        self._reset()

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me")

    # Credits

    def get_balance(self) -> int:
        return self._request("GET", "/credits/balance")["credits_balance"]

    def deposit(self, amount: int, transaction_hash: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/credits/deposit",
            json={"amount": amount, "transaction_hash": transaction_hash},
        )

    def list_transactions(self, limit: int = 10, before: Optional[int] = None) -> list:
        params = {"limit": limit}
        if before is not None:
            params["before"] = before
        return self._request("GET", "/credits/transactions", params=params)

    def get_costs(self) -> Dict[str, int]:
        return self._request("GET", "/credits/costs", auth=False)

    # Art

    def generate(self, prompt: str) -> Dict[str, Any]:
        return self._request("POST", "/generate", json={"prompt": prompt})

    def chat(self, art_id: int, message: str) -> Dict[str, Any]:
        return self._request("POST", "/chat", json={"art_id": art_id, "message": message})

    def list_art(self, page: int = 1, limit: int = 12) -> Dict[str, Any]:
        return self._request(
            "GET", "/art", auth=False, params={"page": page, "limit": limit}
        )

    def my_art(self) -> list:
        return self._request("GET", "/art/user")

    def get_art(self, art_id: int) -> Dict[str, Any]:
        return self._request("GET", f"/art/{art_id}", auth=False)

    def delete_art(self, art_id: int) -> Dict[str, Any]:
        return self._request("DELETE", f"/art/{art_id}")

    # NFTs

    def prepare_mint(self, art_id: int) -> Dict[str, Any]:
        return self._request("POST", "/nft/mint", json={"art_id": art_id})

    def record_mint(
        self,
        art_id: int,
        minted_nft_address: str,
        minted_token_uri: Optional[str] = None,
        mint_transaction_hash: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/nft/update",
            json={
                "art_id": art_id,
                "minted_nft_address": minted_nft_address,
                "minted_token_uri": minted_token_uri,
                "mint_transaction_hash": mint_transaction_hash,
            },
        )

    # Marketplace

    def create_listing(
        self, art_id: int, price: Decimal, token_account: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            "/marketplace/listings",
            json={"art_id": art_id, "price": str(price), "token_account": token_account},
        )

    def list_listings(self, page: int = 1, limit: int = 12) -> Dict[str, Any]:
        return self._request(
            "GET",
            "/marketplace/listings",
            auth=False,
            params={"page": page, "limit": limit},
        )

    def cancel_listing(self, listing_id: int) -> Dict[str, Any]:
        return self._request("POST", f"/marketplace/listings/{listing_id}/cancel")

    def purchase(
        self, listing_id: int, transaction_hash: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/marketplace/purchase/{listing_id}",
            json={"transaction_hash": transaction_hash},
        )
