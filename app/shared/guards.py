from typing import Any, Optional

from app.shared.errors import ForbiddenError


def authorize(
    user: Any, resource: Any, owner_field: str = "user_id", message: Optional[str] = None
):
    """Reject unless ``user`` owns ``resource``.

    The resource must be freshly loaded in the current request; authorization
    decisions are never cached.
    """
    if getattr(resource, owner_field) != user.id:
        raise ForbiddenError(message)
