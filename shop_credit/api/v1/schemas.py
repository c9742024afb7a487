"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from shop_credit.domain.models import InstallmentStatus, PaymentMethod


class CustomerCreate(BaseModel):
    """Request body for POST /v1/customers"""

    name: str = Field(..., min_length=1, description="Customer name")
    phone: str = Field("", max_length=32)
    birth_date: Optional[date] = None


class CustomerResponse(BaseModel):
    customer_id: str
    name: str
    phone: str
    birth_date: Optional[date] = None
    total_bought: Decimal
    total_paid: Decimal
    created_at: str


class CustomerListResponse(BaseModel):
    customers: List[CustomerResponse]


class CreditSummaryResponse(BaseModel):
    """Response for GET /v1/customers/{customer_id}/credit"""

    customer_id: str
    outstanding: Decimal
    pending_count: int
    overdue_count: int
    informational_debt: Decimal
    next_due_date: Optional[date] = None


class SaleCreate(BaseModel):
    """Request body for POST /v1/sales"""

    total_value: Decimal = Field(..., description="Sale total, two decimal places")
    payment_method: PaymentMethod
    customer_id: Optional[str] = None
    installments_count: Optional[int] = Field(None, ge=1)
    sale_date: Optional[date] = None


class InstallmentSchema(BaseModel):
    """Single installment of a credit sale"""

    installment_id: str
    sale_id: str
    customer_id: str
    number: int
    value: Decimal
    due_date: date
    status: InstallmentStatus
    overdue: bool = False
    paid_at: Optional[str] = None


class SaleResponse(BaseModel):
    """Response for POST /v1/sales and GET /v1/sales/{sale_id}"""

    sale_id: str
    customer_id: Optional[str] = None
    total_value: Decimal
    payment_method: PaymentMethod
    installments_count: Optional[int] = None
    sale_date: date
    installments: List[InstallmentSchema]


class InstallmentListResponse(BaseModel):
    installments: List[InstallmentSchema]


class PaymentRequest(BaseModel):
    """Request body for POST /v1/installments/{installment_id}/pay"""

    # Raw value; the allocator parses it and reports invalid_amount
    amount: Any = Field(..., description="Amount paid, two decimal places")
    idempotency_key: Optional[str] = Field(None, min_length=1, max_length=128)


class SettlementSchema(BaseModel):
    installment_id: str
    previous_value: Decimal
    new_value: Decimal
    status: InstallmentStatus


class PaymentResponse(BaseModel):
    """Response for POST /v1/installments/{installment_id}/pay"""

    installments_processed: int
    remaining_credit: Decimal
    replayed: bool = False
    settlements: List[SettlementSchema] = []


class PaymentHistoryItem(BaseModel):
    payment_id: str
    installment_id: str
    amount: Decimal
    installments_processed: int
    remaining_credit: Decimal
    created_at: str


class PaymentHistoryResponse(BaseModel):
    """Response for GET /v1/customers/{customer_id}/payments"""

    customer_id: str
    payments: List[PaymentHistoryItem]
