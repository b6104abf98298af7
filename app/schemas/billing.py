"""
WISP Manager - Schemas de pagos
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.models.billing import PaymentMethod
from app.schemas.client import ReactivateResponse


class PaymentCreate(BaseModel):
    client_id: int
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2000, le=2100)
    amount: float = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    client_id: int
    month: int
    year: int
    amount: float
    method: PaymentMethod
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class PaymentRegistrationResponse(BaseModel):
    message: str
    payment: PaymentResponse
    reactivation: Optional[ReactivateResponse] = None
