from __future__ import annotations

from typing import Annotated, Callable, Iterable

from fastapi import Depends, Request
from jose import JWTError, jwt

from .core import AuthenticationError, AuthorizationError, get_settings
from .roles import Role

# ---------------------------------------------------------------------------
#  Token handling
#
#  Tokens are minted by the auth service. Bookings only need the claims
#  ``sub`` (user id), ``role`` and, for guest checkouts, ``email``.
# ---------------------------------------------------------------------------


def decode_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise AuthenticationError("Invalid token") from exc


# ---------------------------------------------------------------------------
#  Dependencies
# ---------------------------------------------------------------------------
def _bearer_or_cookie(req: Request) -> str | None:
    header = req.headers.get("Authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return req.cookies.get("access_token")


async def current_user(req: Request) -> dict:
    """Claims of the caller; 401 without a valid token."""
    token = _bearer_or_cookie(req)
    if not token:
        raise AuthenticationError("Missing credentials")
    return decode_token(token)


def _role_name(value: "str | Role") -> str:
    return value.value if isinstance(value, Role) else str(value)


def role_required(*allowed: "str | Role | Iterable[str | Role]") -> Callable[[dict], dict]:
    """Dependency admitting only callers whose ``role`` claim is in *allowed*.

    Usage:
        @router.delete("/{booking_id}", dependencies=[Depends(role_required(STAFF_ROLES))])
    """
    if len(allowed) == 1 and isinstance(allowed[0], (list, tuple, set)):
        allowed = tuple(allowed[0])
    names = {_role_name(a) for a in allowed}

    async def _dep(user: Annotated[dict, Depends(current_user)]):
        if user.get("role") not in names:
            raise AuthorizationError("Forbidden")
        return user

    return _dep
