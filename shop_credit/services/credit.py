"""Read-side credit views: outstanding balance and overdue counts per customer"""

import uuid
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session

from shop_credit.domain.exceptions import NotFoundError
from shop_credit.domain.models import CreditSummary
from shop_credit.infrastructure.database.repositories import CustomerRepository, InstallmentRepository
from shop_credit.utils.money import round_money


def customer_credit_summary(db: Session, customer_id: uuid.UUID, today: date | None = None) -> CreditSummary:
    customer = CustomerRepository(db).get_customer(customer_id)
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")

    today = today or date.today()
    pending = [
        inst.to_domain()
        for inst in InstallmentRepository(db).list_pending_for_customer(customer_id)
    ]

    return CreditSummary(
        customer_id=customer_id,
        outstanding=round_money(sum((inst.value for inst in pending), Decimal("0"))),
        pending_count=len(pending),
        overdue_count=sum(1 for inst in pending if inst.is_overdue(today)),
        informational_debt=round_money(Decimal(customer.total_bought) - Decimal(customer.total_paid)),
        next_due_date=pending[0].due_date if pending else None,
    )
