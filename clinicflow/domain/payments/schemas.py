"""Payment domain schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field


class PaymentCreate(BaseModel):
    """Schema for recording a payment against an appointment"""

    appointmentId: int
    amount: Decimal = Field(ge=Decimal("0.01"), max_digits=10, decimal_places=2)
    status: Literal["PENDING", "COMPLETED", "REFUNDED"] = "COMPLETED"
    paidAt: Optional[datetime] = None


class PaymentResponse(BaseModel):
    id: int
    appointmentId: int
    amount: float
    status: str
    paidAt: Optional[datetime] = None
