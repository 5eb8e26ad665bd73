from __future__ import annotations
from datetime import date
from decimal import Decimal
from pydantic import BaseModel, Field


class DepositUpdateRequest(BaseModel):
    deposit_value: Decimal = Field(gt=0, max_digits=18, decimal_places=2)


class DepositUpdateResponse(BaseModel):
    success: bool = True
    deposit_date: date
    deposit_value: float
