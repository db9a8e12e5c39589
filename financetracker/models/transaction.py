from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    REFUND = "refund"


class TransactionCreate(BaseModel):
    transaction_type: TransactionType
    amount: float
    gst_amount: Optional[float] = 0.0
    tds_amount: Optional[float] = 0.0
    transaction_date: date
    description: Optional[str] = None
    category_id: Optional[str] = None  # transaction_categories.id
    vendor_id: Optional[str] = None  # vendors.id
    project_id: Optional[str] = None  # projects.id
    invoice_number: Optional[str] = None
    payment_mode: Optional[str] = None  # cash/card/upi/bank/cheque


class TransactionUpdate(BaseModel):
    transaction_type: Optional[TransactionType] = None
    amount: Optional[float] = None
    gst_amount: Optional[float] = None
    tds_amount: Optional[float] = None
    transaction_date: Optional[date] = None
    description: Optional[str] = None
    category_id: Optional[str] = None
    vendor_id: Optional[str] = None
    project_id: Optional[str] = None
    invoice_number: Optional[str] = None
    payment_mode: Optional[str] = None
