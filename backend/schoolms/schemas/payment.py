from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from schoolms.models.student import PaymentStatus

MIN_PAYMENT_AMOUNT = Decimal("0.01")
MAX_PAYMENT_AMOUNT = Decimal("10000.00")


class PaymentCreate(BaseModel):
    student_id: int
    amount: Decimal = Field(..., ge=MIN_PAYMENT_AMOUNT, le=MAX_PAYMENT_AMOUNT, decimal_places=2)
    payment_date: Optional[datetime] = None
    status: str = Field(PaymentStatus.PENDING, min_length=1, max_length=20)
    transaction_id: str = Field(..., min_length=1, max_length=50)
    payment_method: str = Field(..., min_length=1, max_length=20)


class PaymentResponse(BaseModel):
    id: int
    student_id: int
    amount: Decimal
    payment_date: datetime
    status: str
    transaction_id: str
    payment_method: str

    class Config:
        from_attributes = True
