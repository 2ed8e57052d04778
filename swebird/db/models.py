from sqlmodel import SQLModel, Field
from datetime import datetime, timezone
from typing import Optional
import uuid
from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, Enum as SAEnum
from enum import Enum


def utcnow() -> datetime:
    # stored naive, always UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def as_naive_utc(dt: datetime) -> datetime:
    return as_utc(dt).replace(tzinfo=None)


"""
___________________________________________________

1.  Coupon Table
___________________________________________________

"""
class DiscountType(str, Enum):
    percentage = "percentage"
    fixed = "fixed"


class Coupon(SQLModel, table=True):
    __tablename__ = "coupons"

    uid: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(sa_column=Column(String, unique=True, index=True, nullable=False))  # e.g. SWEBIRD10
    discount_type: DiscountType = Field(sa_column=Column(SAEnum(DiscountType), nullable=False))
    discount_value: float = Field(sa_column=Column(Float, nullable=False))  # 10 for 10% or 100 for ₹100
    min_purchase_amount: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))
    max_discount_amount: Optional[float] = Field(default=None, sa_column=Column(Float, nullable=True))
    expiry_date: datetime = Field(sa_column=Column(DateTime, nullable=False))
    usage_limit: int = Field(sa_column=Column(Integer, nullable=False))
    used_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False, default=utcnow))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False, default=utcnow))


"""
___________________________________________________

2.  Order Table
___________________________________________________

"""
def generate_swebird_uid():
    return f"SWB-{uuid.uuid4().hex[:6].upper()}"  # Example: SWB-3F9D1A


class OrderStatus(str, Enum):
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    canceled = "canceled"


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    uid: str = Field(default_factory=generate_swebird_uid, primary_key=True, index=True)
    user_uid: Optional[str] = None  # guest checkouts have no user
    status: OrderStatus = Field(default=OrderStatus.processing)
    subtotal: float = Field(sa_column=Column(Float, nullable=False))
    shipping_price: float = Field(default=0.0, sa_column=Column(Float, nullable=False, default=0.0))
    discount: float = Field(default=0.0, sa_column=Column(Float, nullable=False, default=0.0))
    total: float = Field(sa_column=Column(Float, nullable=False))
    # copied from the coupon at checkout, survives coupon deletion
    coupon_code: Optional[str] = Field(default=None, index=True)
    payment_reference: str
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False, default=utcnow))
