from typing import Optional

from fastapi import Header

from loyalty_rewards.errors import AuthenticationError


def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> Optional[str]:
    """User id set by the upstream auth gateway, if any."""
    return x_user_id or None


def resolve_user_id(explicit: Optional[str], current_user_id: Optional[str]) -> str:
    user_id = explicit or current_user_id
    if not user_id:
        raise AuthenticationError("Missing user context. Provide userId or the X-User-Id header.")
    return user_id
