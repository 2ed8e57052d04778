from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from swebird.db.models import OrderStatus

class ApplyCouponRequest(BaseModel):
    code: str = Field(min_length=1)
    cart_total: float = Field(ge=0)  # subtotal + shipping, before discount

class ApplyCouponResponse(BaseModel):
    success: bool
    discount: float
    error: Optional[str] = None
    final_total: float

class OrderCreate(BaseModel):
    subtotal: float = Field(ge=0)
    shipping_price: float = Field(default=0.0, ge=0)
    coupon_code: Optional[str] = None
    payment_reference: str = Field(min_length=1)

class OrderResponse(BaseModel):
    uid: str
    user_uid: Optional[str] = None
    status: OrderStatus
    subtotal: float
    shipping_price: float
    discount: float
    total: float
    coupon_code: Optional[str] = None
    payment_reference: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('subtotal', 'shipping_price', 'discount', 'total')
    def _serialize_prices(self, value: float) -> float:
        return round(value, 2)
