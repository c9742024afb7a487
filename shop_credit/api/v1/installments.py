"""Installment listing and POST /v1/installments/{installment_id}/pay - cascade payment endpoint"""

import time
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from shop_credit.api.v1.schemas import (
    InstallmentListResponse,
    InstallmentSchema,
    PaymentRequest,
    PaymentResponse,
    SettlementSchema,
)
from shop_credit.api.dependencies import get_allocator, get_request_id, parse_uuid
from shop_credit.infrastructure.database.session import get_db
from shop_credit.infrastructure.database.models import Installment
from shop_credit.infrastructure.database.repositories import InstallmentRepository
from shop_credit.services.allocator import InstallmentAllocator
from shop_credit.domain.exceptions import (
    IdempotencyConflictError,
    InvalidAmountError,
    NotFoundError,
    OutcomeUnknownError,
    PersistenceFailureError,
)
from shop_credit.domain.models import InstallmentStatus
from shop_credit.infrastructure.observability.metrics import record_allocation, record_allocation_failure
from shop_credit.infrastructure.observability.logging import log_allocation

router = APIRouter()


def installment_to_schema(inst: Installment, today: date | None = None) -> InstallmentSchema:
    snapshot = inst.to_domain()
    return InstallmentSchema(
        installment_id=str(inst.id),
        sale_id=str(inst.sale_id),
        customer_id=str(inst.customer_id),
        number=inst.number,
        value=snapshot.value,
        due_date=inst.due_date,
        status=snapshot.status,
        overdue=snapshot.is_overdue(today or date.today()),
        paid_at=inst.paid_at.isoformat() if inst.paid_at else None,
    )


@router.get("/installments", response_model=InstallmentListResponse)
def list_installments(
    customer_id: Optional[str] = Query(None, description="Filter by customer"),
    status: Optional[InstallmentStatus] = Query(None, description="pending | paid"),
    db: Session = Depends(get_db),
):
    """
    List installments ordered by due date.

    Overdue is derived: pending with a due date before today.
    """
    customer_uuid = parse_uuid(customer_id, "customer") if customer_id else None
    installments = InstallmentRepository(db).list_installments(customer_id=customer_uuid, status=status)

    today = date.today()
    return InstallmentListResponse(
        installments=[installment_to_schema(inst, today) for inst in installments]
    )


@router.post("/installments/{installment_id}/pay", response_model=PaymentResponse)
def pay_installment(
    installment_id: str,
    request_body: PaymentRequest,
    request: Request,
    allocator: InstallmentAllocator = Depends(get_allocator),
):
    """
    Receive a payment starting from an installment.

    Flow:
    1. Validate amount (positive, two decimals)
    2. Resolve the customer owning the installment and lock their ledger
    3. Cascade the amount over pending installments, oldest due first
    4. Increment the customer's total paid and commit
    5. Return settled count and leftover credit

    Without an idempotency_key a repeated call is applied again. Reusing a key
    for a different installment or amount is rejected with 409.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    installment_uuid = parse_uuid(installment_id, "installment")

    try:
        result = allocator.allocate(
            installment_uuid,
            request_body.amount,
            idempotency_key=request_body.idempotency_key,
        )

    except InvalidAmountError as e:
        record_allocation_failure(e.kind.value)
        logging.warning(f"Invalid amount: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.to_dict())

    except NotFoundError as e:
        record_allocation_failure(e.kind.value)
        logging.warning(f"Not found: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=e.to_dict())

    except IdempotencyConflictError as e:
        record_allocation_failure(e.kind.value)
        logging.warning(f"Idempotency conflict: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=e.to_dict())

    except PersistenceFailureError as e:
        record_allocation_failure(e.kind.value)
        logging.error(f"Allocation persistence failure: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail=e.to_dict())

    except OutcomeUnknownError as e:
        record_allocation_failure(e.kind.value)
        logging.error(f"Allocation outcome unknown: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=504, detail=e.to_dict())

    duration_ms = (time.time() - start_time) * 1000
    record_allocation(result)
    log_allocation(
        request_id,
        str(result.customer_id),
        installment_id,
        result.amount,
        result.installments_processed,
        result.remaining_credit,
        result.replayed,
        duration_ms,
    )

    return PaymentResponse(
        installments_processed=result.installments_processed,
        remaining_credit=result.remaining_credit,
        replayed=result.replayed,
        settlements=[
            SettlementSchema(
                installment_id=str(s.installment_id),
                previous_value=s.previous_value,
                new_value=s.new_value,
                status=s.status,
            )
            for s in result.settlements
        ],
    )
