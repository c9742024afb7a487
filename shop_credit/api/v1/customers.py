"""Customer endpoints: registration, lookup, credit position and payment history"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from shop_credit.api.v1.schemas import (
    CreditSummaryResponse,
    CustomerCreate,
    CustomerListResponse,
    CustomerResponse,
    PaymentHistoryItem,
    PaymentHistoryResponse,
)
from shop_credit.api.dependencies import parse_uuid
from shop_credit.infrastructure.database.session import get_db
from shop_credit.infrastructure.database.models import Customer
from shop_credit.infrastructure.database.repositories import CreditPaymentRepository, CustomerRepository
from shop_credit.services.credit import customer_credit_summary
from shop_credit.domain.exceptions import NotFoundError

router = APIRouter()


def customer_to_response(customer: Customer) -> CustomerResponse:
    return CustomerResponse(
        customer_id=str(customer.id),
        name=customer.name,
        phone=customer.phone,
        birth_date=customer.birth_date,
        total_bought=customer.total_bought,
        total_paid=customer.total_paid,
        created_at=customer.created_at.isoformat(),
    )


@router.post("/customers", response_model=CustomerResponse, status_code=201)
def create_customer(request_body: CustomerCreate, db: Session = Depends(get_db)):
    """Register a customer with zeroed purchase/payment totals"""
    customer = CustomerRepository(db).create_customer(
        name=request_body.name,
        phone=request_body.phone,
        birth_date=request_body.birth_date,
    )
    db.commit()
    db.refresh(customer)
    return customer_to_response(customer)


@router.get("/customers", response_model=CustomerListResponse)
def list_customers(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    customers = CustomerRepository(db).list_customers(limit=limit, offset=offset)
    return CustomerListResponse(customers=[customer_to_response(c) for c in customers])


@router.get("/customers/{customer_id}", response_model=CustomerResponse)
def get_customer(customer_id: str, db: Session = Depends(get_db)):
    customer = CustomerRepository(db).get_customer(parse_uuid(customer_id, "customer"))
    if not customer:
        raise HTTPException(status_code=404, detail=NotFoundError(f"Customer {customer_id} not found").to_dict())
    return customer_to_response(customer)


@router.get("/customers/{customer_id}/credit", response_model=CreditSummaryResponse)
def get_customer_credit(customer_id: str, db: Session = Depends(get_db)):
    """
    Outstanding credit of a customer.

    Returns:
        Sum of pending installment values (authoritative debt), overdue count,
        and the informational total_bought - total_paid
    """
    try:
        summary = customer_credit_summary(db, parse_uuid(customer_id, "customer"))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())

    return CreditSummaryResponse(
        customer_id=str(summary.customer_id),
        outstanding=summary.outstanding,
        pending_count=summary.pending_count,
        overdue_count=summary.overdue_count,
        informational_debt=summary.informational_debt,
        next_due_date=summary.next_due_date,
    )


@router.get("/customers/{customer_id}/payments", response_model=PaymentHistoryResponse)
def get_customer_payments(
    customer_id: str,
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Recent payment allocations for a customer, newest first"""
    customer_uuid = parse_uuid(customer_id, "customer")
    if not CustomerRepository(db).get_customer(customer_uuid):
        raise HTTPException(status_code=404, detail=NotFoundError(f"Customer {customer_id} not found").to_dict())

    payments = CreditPaymentRepository(db).list_for_customer(customer_uuid, limit=limit)

    return PaymentHistoryResponse(
        customer_id=customer_id,
        payments=[
            PaymentHistoryItem(
                payment_id=str(p.id),
                installment_id=str(p.installment_id),
                amount=p.amount,
                installments_processed=p.installments_processed,
                remaining_credit=p.remaining_credit,
                created_at=p.created_at.isoformat(),
            )
            for p in payments
        ],
    )
