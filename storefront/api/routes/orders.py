"""
Checkout and order routes
"""
from typing import List
from fastapi import APIRouter, Depends, Request, status

from storefront.api.deps import get_checkout_service, get_current_user
from storefront.core.config import settings
from storefront.core.rate_limit import limiter
from storefront.models.user import User
from storefront.schemas.order import OrderResponse
from storefront.services.checkout_service import CheckoutService

router = APIRouter()


@router.post("/checkout", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.RATE_LIMIT_CHECKOUT)
async def checkout(
    request: Request,
    user: User = Depends(get_current_user),
    checkout_service: CheckoutService = Depends(get_checkout_service),
):
    """Turn the current user's cart into an order and clear the cart"""
    return await checkout_service.checkout(user.id)


@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(
    user: User = Depends(get_current_user),
    checkout_service: CheckoutService = Depends(get_checkout_service),
):
    """Get current user's orders, newest first"""
    return await checkout_service.list_orders(user.id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    checkout_service: CheckoutService = Depends(get_checkout_service),
):
    """Get single order"""
    return await checkout_service.get_order(user.id, order_id)
