# kibbledrop/api/deps.py
"""
Shared FastAPI dependencies: the session guard used by every customer
router, the admin guard used by every /api/admin router, and the payment
collaborators that tests override.
"""
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from kibbledrop.data.database import get_db
from kibbledrop.data.models.user import UserModel
from kibbledrop.domain.errors import AuthenticationError
from kibbledrop.services.auth_service import decode_access_token
from kibbledrop.services.event_guard import EventGuard
from kibbledrop.services.payments.stripe_provider import StripeProvider
from kibbledrop.services.payments.tradesafe_provider import TradeSafeProvider
from kibbledrop.services.payments.tradesafe_graphql_provider import TradeSafeGraphQLProvider

COOKIE_NAME = "access_token"


def _token_from_request(request: Request) -> str | None:
    header = request.headers.get("Authorization")
    if header and header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.cookies.get(COOKIE_NAME)


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> UserModel | None:
    token = _token_from_request(request)
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except AuthenticationError:
        return None
    user = db.get(UserModel, int(payload["sub"]))
    if user is None or user.status != "active":
        return None
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> UserModel:
    token = _token_from_request(request)
    if not token:
        raise AuthenticationError("Unauthorized")

    payload = decode_access_token(token)
    user = db.get(UserModel, int(payload["sub"]))
    if user is None:
        raise AuthenticationError("Unauthorized")
    if user.status != "active":
        raise PermissionError("Account is suspended")
    return user


def require_admin(user: UserModel = Depends(get_current_user)) -> UserModel:
    # role is read from the database row, not trusted from the token
    if user.role != "admin":
        raise PermissionError("Admin access required")
    return user


@lru_cache
def get_stripe_provider() -> StripeProvider:
    return StripeProvider()


@lru_cache
def get_tradesafe_provider() -> TradeSafeProvider:
    return TradeSafeProvider()


@lru_cache
def get_tradesafe_graphql_provider() -> TradeSafeGraphQLProvider:
    return TradeSafeGraphQLProvider()


@lru_cache
def get_event_guard() -> EventGuard:
    return EventGuard()


async def raw_body(request: Request) -> bytes:
    # webhook signatures are computed over the exact bytes received
    return await request.body()
