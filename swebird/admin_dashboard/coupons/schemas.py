from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from typing import Optional
from datetime import datetime, timezone
import uuid

from swebird.db.models import DiscountType, as_utc

class CouponBase(BaseModel):
    code: str
    discount_type: DiscountType = DiscountType.percentage
    discount_value: float = Field(ge=0)
    min_purchase_amount: Optional[float] = Field(default=None, ge=0)
    max_discount_amount: Optional[float] = Field(default=None, ge=0)
    expiry_date: Optional[datetime] = None  # defaults to DEFAULT_COUPON_VALIDITY_DAYS from now
    usage_limit: Optional[int] = Field(default=None, ge=1)  # defaults to DEFAULT_USAGE_LIMIT
    is_active: bool = True
    description: Optional[str] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("code must not be empty")
        return v

    @field_validator("min_purchase_amount", "max_discount_amount")
    @classmethod
    def zero_means_unset(cls, v: Optional[float]) -> Optional[float]:
        return v or None

    @field_validator("description")
    @classmethod
    def blank_description_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def check_percentage_range(self):
        if self.discount_type == DiscountType.percentage and self.discount_value > 100:
            raise ValueError("percentage discount_value must be between 0 and 100")
        return self

class CouponCreate(CouponBase):
    pass

class CouponUpdate(CouponBase):
    """Full overwrite of a coupon's rules; used_count is never taken from input."""
    pass

class CouponResponse(BaseModel):
    uid: uuid.UUID
    code: str
    discount_type: DiscountType
    discount_value: float
    min_purchase_amount: Optional[float] = None
    max_discount_amount: Optional[float] = None
    expiry_date: datetime
    usage_limit: int
    used_count: int
    is_active: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) >= as_utc(self.expiry_date)
