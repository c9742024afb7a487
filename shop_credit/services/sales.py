"""Sale recording: persists the sale, its installment schedule and customer totals"""

import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from sqlalchemy.orm import Session

from shop_credit.config import settings
from shop_credit.domain.exceptions import InvalidSaleError, NotFoundError
from shop_credit.domain.installments import generate_installment_schedule
from shop_credit.domain.models import PaymentMethod
from shop_credit.infrastructure.database.models import Sale
from shop_credit.infrastructure.database.repositories import CustomerRepository, SaleRepository
from shop_credit.utils.money import has_cent_precision, to_decimal


def _validate_total(total_value) -> Decimal:
    try:
        total = to_decimal(total_value)
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidSaleError(f"Malformed total_value: {total_value!r}") from e
    if not total.is_finite() or total <= 0:
        raise InvalidSaleError(f"total_value must be positive, got {total_value!r}")
    if not has_cent_precision(total):
        raise InvalidSaleError(f"total_value must have at most two decimal places, got {total}")
    return total


def record_sale(
    db: Session,
    total_value,
    payment_method: PaymentMethod,
    customer_id: uuid.UUID | None = None,
    installments_count: int | None = None,
    sale_date: date | None = None,
) -> Sale:
    """
    Create a sale; credit sales also get their monthly installments.

    The caller owns the transaction (commit/rollback).

    Raises:
        InvalidSaleError: bad total or installment count, or a credit sale without customer
        NotFoundError: customer_id does not exist
    """
    total = _validate_total(total_value)
    sale_date = sale_date or date.today()

    customer_repo = CustomerRepository(db)
    if customer_id is not None and customer_repo.get_customer(customer_id) is None:
        raise NotFoundError(f"Customer {customer_id} not found")

    schedule = []
    if payment_method == PaymentMethod.INSTALLMENT:
        if customer_id is None:
            raise InvalidSaleError("Installment sales require a customer")
        count = installments_count or 1
        if count > settings.max_installments:
            raise InvalidSaleError(
                f"installments_count must be at most {settings.max_installments}, got {count}"
            )
        schedule = generate_installment_schedule(total, count, sale_date)
    elif installments_count not in (None, 0, 1):
        raise InvalidSaleError("installments_count only applies to installment sales")

    sale = SaleRepository(db).create_sale(
        customer_id=customer_id,
        total_value=total,
        payment_method=payment_method,
        sale_date=sale_date,
        installments=schedule,
    )

    if customer_id is not None:
        customer_repo.increment_bought(customer_id, total)

    return sale
