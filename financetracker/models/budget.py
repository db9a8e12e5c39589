from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BudgetStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    DRAFT = "draft"


class BudgetCreate(BaseModel):
    name: str
    department: Optional[str] = None
    category_id: Optional[str] = None  # transaction_categories.id
    allocated_amount: float = Field(ge=0)
    spent_amount: float = 0.0
    period_start: date
    period_end: date
    alert_threshold: Optional[float] = Field(default=None, ge=0, le=100)  # percent, 80 when unset
    status: BudgetStatus = BudgetStatus.DRAFT


class BudgetUpdate(BaseModel):
    name: Optional[str] = None
    department: Optional[str] = None
    category_id: Optional[str] = None
    allocated_amount: Optional[float] = Field(default=None, ge=0)
    spent_amount: Optional[float] = None
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    alert_threshold: Optional[float] = Field(default=None, ge=0, le=100)
    status: Optional[BudgetStatus] = None
