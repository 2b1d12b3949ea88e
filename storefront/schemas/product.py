"""
Product schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    stock_quantity: int = Field(0, ge=0)

    @field_validator("name", "category")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class ProductCreate(ProductBase):
    pass


class ProductUpdate(ProductBase):
    """PUT is a full replace: same required fields as create."""


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: Decimal
    description: Optional[str] = None
    category: str
    stock_quantity: int
    created_at: Optional[datetime] = None

    @field_serializer("price")
    def serialize_price(self, price: Decimal) -> float:
        return float(price)
