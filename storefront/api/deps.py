"""
API dependencies

The Database handle lives on app.state and is created by the lifespan; every
service is built per request around it. Authentication is bearer-only.
"""
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select

from storefront.core.database import Database
from storefront.core.exceptions import AuthError
from storefront.core.security import decode_access_token
from storefront.models.user import User
from storefront.services.catalog_service import CatalogService
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService

# auto_error=False so a missing header produces our 401 body, not Starlette's 403
security = HTTPBearer(auto_error=False)


def get_database(request: Request) -> Database:
    return request.app.state.db


def get_catalog_service(db: Database = Depends(get_database)) -> CatalogService:
    return CatalogService(db)


def get_cart_service(db: Database = Depends(get_database)) -> CartService:
    return CartService(db)


def get_checkout_service(db: Database = Depends(get_database)) -> CheckoutService:
    return CheckoutService(db)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Database = Depends(get_database),
) -> User:
    """Resolve the bearer token to an active user or fail with 401."""
    if not credentials or not credentials.credentials:
        raise AuthError("Not authenticated")

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise AuthError("Invalid or expired token")

    async with db.session() as session:
        result = await session.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

    if not user:
        raise AuthError("User not found")

    if not user.is_active:
        raise AuthError("Account is disabled")

    return user
