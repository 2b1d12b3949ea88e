"""
Order schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_serializer

from storefront.models.order import OrderStatus


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int]
    total_price: Decimal
    status: OrderStatus
    created_at: datetime

    @field_serializer("total_price")
    def serialize_total(self, total_price: Decimal) -> float:
        return float(total_price)
