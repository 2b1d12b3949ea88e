"""
Cart routes

Failures while adding (unknown product, insufficient stock) are client
errors: both come back as 400 with the failure message.
"""
from typing import List
from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_cart_service, get_current_user
from storefront.core.exceptions import NotFoundError, ValidationError
from storefront.models.user import User
from storefront.schemas.cart import CartItemCreate, CartItemResponse, CartLineResponse
from storefront.services.cart_service import CartService

router = APIRouter()


@router.get("", response_model=List[CartLineResponse])
async def get_cart(
    user: User = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    """Get current user's cart with per-line totals"""
    return await cart.list(user.id)


@router.post("", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    item_data: CartItemCreate,
    user: User = Depends(get_current_user),
    cart: CartService = Depends(get_cart_service),
):
    """Add a product to the cart, accumulating quantity on repeat adds"""
    try:
        return await cart.add(user.id, item_data.product_id, item_data.quantity)
    except NotFoundError as e:
        raise ValidationError(e.message, code=e.code, details=e.details) from e
