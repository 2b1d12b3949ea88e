"""
Product routes

Reads are public; every mutation requires a bearer token.
"""
from typing import List
from fastapi import APIRouter, Depends, status

from storefront.api.deps import get_catalog_service, get_current_user
from storefront.models.user import User
from storefront.schemas.product import ProductCreate, ProductUpdate, ProductResponse
from storefront.services.catalog_service import CatalogService

router = APIRouter()


@router.get("", response_model=List[ProductResponse])
async def list_products(catalog: CatalogService = Depends(get_catalog_service)):
    """List all products in insertion order"""
    return await catalog.list()


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, catalog: CatalogService = Depends(get_catalog_service)):
    """Get single product by ID"""
    return await catalog.get(product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Create new product"""
    return await catalog.create(product_data)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    product_data: ProductUpdate,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Replace every mutable field of a product"""
    return await catalog.update(product_id, product_data)


@router.delete("/{product_id}")
async def delete_product(
    product_id: int,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Delete product"""
    await catalog.delete(product_id)
    return {"message": "Product deleted"}
