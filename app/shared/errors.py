from typing import Any, Optional

from fastapi import status


class AppError(Exception):
    """Base class for errors rendered as the ``{kind, message, details}`` envelope."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"kind": self.kind, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    kind = "authentication_error"
    default_message = "Authentication required"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "forbidden"
    default_message = "Unauthorized"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"
    default_message = "Not found"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "validation_error"
    default_message = "Invalid request"


class InsufficientCreditsError(ValidationError):
    kind = "insufficient_credits"
    default_message = "Insufficient credits"


class NotMintedError(ValidationError):
    kind = "not_minted"
    default_message = "Art must be minted before listing"


class DepositError(ValidationError):
    kind = "deposit_error"
    default_message = "Failed to process deposit"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    kind = "conflict"
    default_message = "Conflict"


class AlreadyMintedError(ConflictError):
    kind = "already_minted"
    default_message = "Art is already minted"


class AlreadyListedError(ConflictError):
    kind = "already_listed"
    default_message = "Art already has an active listing"


class ListingNotActiveError(ConflictError):
    kind = "listing_not_active"
    default_message = "Listing is not active"


class UpstreamError(AppError):
    kind = "upstream_error"
    default_message = "Upstream service failure"


class ModelError(UpstreamError):
    kind = "model_error"
    default_message = "Failed to generate image"


class StorageError(UpstreamError):
    kind = "storage_error"
    default_message = "Object storage failure"


class ChainError(UpstreamError):
    kind = "chain_error"
    default_message = "Blockchain request failed"


class UpstreamTimeoutError(AppError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    kind = "timeout"
    default_message = "Upstream service timed out"
