"""Data access layer for the credit ledger"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session
from shop_credit.infrastructure.database.models import CreditPayment, Customer, Installment, Sale
from shop_credit.domain.models import AllocationResult, InstallmentStatus, PaymentMethod, ScheduledInstallment


class CustomerRepository:
    """Repository for customers and their aggregate totals"""

    def __init__(self, db: Session):
        self.db = db

    def create_customer(self, name: str, phone: str = "", birth_date: date | None = None) -> Customer:
        db_customer = Customer(
            name=name,
            phone=phone,
            birth_date=birth_date,
            total_bought=Decimal("0.00"),
            total_paid=Decimal("0.00"),
        )
        self.db.add(db_customer)
        self.db.flush()
        return db_customer

    def get_customer(self, customer_id: uuid.UUID) -> Optional[Customer]:
        return self.db.get(Customer, customer_id)

    def lock_customer_query(self, customer_id: uuid.UUID):
        return (
            self.db.query(Customer)
            .filter(Customer.id == customer_id)
            .with_for_update()
            .populate_existing()
        )

    def lock_customer(self, customer_id: uuid.UUID) -> Optional[Customer]:
        """Row-lock the customer for the rest of the transaction (serializes allocations)"""
        return self.lock_customer_query(customer_id).first()

    def list_customers(self, limit: int = 100, offset: int = 0) -> List[Customer]:
        return (
            self.db.query(Customer)
            .order_by(Customer.name)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def increment_paid(self, customer_id: uuid.UUID, amount: Decimal) -> None:
        """Atomic total_paid += amount, evaluated by the database"""
        self.db.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(total_paid=Customer.total_paid + amount)
        )

    def increment_bought(self, customer_id: uuid.UUID, amount: Decimal) -> None:
        """Atomic total_bought += amount, evaluated by the database"""
        self.db.execute(
            update(Customer)
            .where(Customer.id == customer_id)
            .values(total_bought=Customer.total_bought + amount)
        )


class InstallmentRepository:
    """Repository for installments"""

    def __init__(self, db: Session):
        self.db = db

    def get_installment(self, installment_id: uuid.UUID) -> Optional[Installment]:
        return self.db.get(Installment, installment_id)

    def pending_for_customer_query(self, customer_id: uuid.UUID, lock: bool = False):
        query = (
            self.db.query(Installment)
            .filter(
                Installment.customer_id == customer_id,
                Installment.status == InstallmentStatus.PENDING.value,
            )
            .order_by(Installment.due_date.asc(), Installment.number.asc())
        )
        if lock:
            # Refresh rows already in the identity map with the locked versions
            query = query.with_for_update().populate_existing()
        return query

    def list_pending_for_customer(self, customer_id: uuid.UUID, lock: bool = False) -> List[Installment]:
        """Pending installments by due_date, then number"""
        return self.pending_for_customer_query(customer_id, lock=lock).all()

    def list_installments(
        self,
        customer_id: uuid.UUID | None = None,
        status: InstallmentStatus | None = None,
        limit: int = 500,
    ) -> List[Installment]:
        query = self.db.query(Installment)
        if customer_id is not None:
            query = query.filter(Installment.customer_id == customer_id)
        if status is not None:
            query = query.filter(Installment.status == status.value)
        return (
            query.order_by(Installment.due_date.asc(), Installment.number.asc())
            .limit(limit)
            .all()
        )

    def update_installment(self, installment: Installment, value: Decimal, status: InstallmentStatus) -> None:
        installment.value = value
        installment.status = status.value
        if status == InstallmentStatus.PAID:
            installment.paid_at = datetime.now(timezone.utc)


class SaleRepository:
    """Repository for sales and their generated installments"""

    def __init__(self, db: Session):
        self.db = db

    def create_sale(
        self,
        customer_id: uuid.UUID | None,
        total_value: Decimal,
        payment_method: PaymentMethod,
        sale_date: date,
        installments: List[ScheduledInstallment],
    ) -> Sale:
        """Create a sale with its installment schedule (empty for non-credit sales)"""
        db_sale = Sale(
            customer_id=customer_id,
            sale_date=sale_date,
            total_value=total_value,
            payment_method=payment_method.value,
            installments_count=len(installments) or None,
        )
        self.db.add(db_sale)
        self.db.flush()

        for inst in installments:
            db_sale.installments.append(
                Installment(
                    sale_id=db_sale.id,
                    customer_id=customer_id,
                    number=inst.number,
                    value=inst.value,
                    due_date=inst.due_date,
                    status=InstallmentStatus.PENDING.value,
                )
            )
        self.db.flush()

        return db_sale

    def get_sale(self, sale_id: uuid.UUID) -> Optional[Sale]:
        return self.db.get(Sale, sale_id)


class CreditPaymentRepository:
    """Repository for committed payment allocations"""

    def __init__(self, db: Session):
        self.db = db

    def get_by_idempotency_key(self, key: str) -> Optional[CreditPayment]:
        return (
            self.db.query(CreditPayment)
            .filter(CreditPayment.idempotency_key == key)
            .first()
        )

    def record_payment(
        self,
        customer_id: uuid.UUID,
        installment_id: uuid.UUID,
        amount: Decimal,
        result: AllocationResult,
        idempotency_key: str | None = None,
    ) -> CreditPayment:
        db_payment = CreditPayment(
            customer_id=customer_id,
            installment_id=installment_id,
            amount=amount,
            installments_processed=result.installments_processed,
            remaining_credit=result.remaining_credit,
            idempotency_key=idempotency_key,
        )
        self.db.add(db_payment)
        self.db.flush()
        return db_payment

    def list_for_customer(self, customer_id: uuid.UUID, limit: int = 20) -> List[CreditPayment]:
        return (
            self.db.query(CreditPayment)
            .filter(CreditPayment.customer_id == customer_id)
            .order_by(CreditPayment.created_at.desc())
            .limit(limit)
            .all()
        )
