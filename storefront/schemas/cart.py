"""
Cart schemas
"""
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_serializer


class CartItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(1, gt=0)


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    product_id: int
    quantity: int


class CartLineResponse(BaseModel):
    """Cart listing row: line joined with product name and price."""
    id: int
    product_id: int
    quantity: int
    name: str
    price: Decimal
    total: Decimal

    @field_serializer("price", "total")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)
