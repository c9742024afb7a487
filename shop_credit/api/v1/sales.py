"""POST /v1/sales - record a sale, generating installments for credit sales"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shop_credit.api.v1.schemas import SaleCreate, SaleResponse
from shop_credit.api.v1.installments import installment_to_schema
from shop_credit.api.dependencies import get_request_id, parse_uuid
from shop_credit.infrastructure.database.session import get_db
from shop_credit.infrastructure.database.models import Sale
from shop_credit.infrastructure.database.repositories import SaleRepository
from shop_credit.services.sales import record_sale
from shop_credit.domain.exceptions import InvalidSaleError, NotFoundError, PersistenceFailureError
from shop_credit.infrastructure.observability.metrics import sale_counter
from shop_credit.infrastructure.observability.logging import log_sale

router = APIRouter()


def sale_to_response(sale: Sale) -> SaleResponse:
    return SaleResponse(
        sale_id=str(sale.id),
        customer_id=str(sale.customer_id) if sale.customer_id else None,
        total_value=sale.total_value,
        payment_method=sale.payment_method,
        installments_count=sale.installments_count,
        sale_date=sale.sale_date,
        installments=[installment_to_schema(inst) for inst in sale.installments],
    )


@router.post("/sales", response_model=SaleResponse, status_code=201)
def create_sale(
    request_body: SaleCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record a sale.

    Installment sales create one installment per month and add the total
    to the customer's total_bought in the same transaction.
    """
    request_id = get_request_id(request)
    customer_uuid = parse_uuid(request_body.customer_id, "customer") if request_body.customer_id else None

    try:
        sale = record_sale(
            db,
            total_value=request_body.total_value,
            payment_method=request_body.payment_method,
            customer_id=customer_uuid,
            installments_count=request_body.installments_count,
            sale_date=request_body.sale_date,
        )
        db.commit()

    except InvalidSaleError as e:
        db.rollback()
        logging.warning(f"Invalid sale: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=422, detail=e.to_dict())

    except NotFoundError as e:
        db.rollback()
        logging.warning(f"Not found: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=404, detail=e.to_dict())

    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Sale persistence failure: {e}", extra={"request_id": request_id})
        error = PersistenceFailureError("Ledger store unavailable")
        raise HTTPException(status_code=503, detail=error.to_dict())

    sale_counter.labels(payment_method=sale.payment_method).inc()
    log_sale(request_id, str(sale.id), sale.payment_method, sale.total_value, len(sale.installments))

    return sale_to_response(sale)


@router.get("/sales/{sale_id}", response_model=SaleResponse)
def get_sale(sale_id: str, db: Session = Depends(get_db)):
    """Retrieve a sale with its installment schedule"""
    sale = SaleRepository(db).get_sale(parse_uuid(sale_id, "sale"))
    if not sale:
        raise HTTPException(status_code=404, detail=NotFoundError(f"Sale {sale_id} not found").to_dict())

    return sale_to_response(sale)
