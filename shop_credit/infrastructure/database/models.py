"""SQLAlchemy ORM models for the credit ledger"""

import uuid
from decimal import Decimal
from sqlalchemy import Column, String, Date, DateTime, Integer, ForeignKey, Index, Numeric, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from shop_credit.domain.models import Installment as InstallmentSnapshot, InstallmentStatus

Base = declarative_base()

Money = Numeric(12, 2)


class Customer(Base):
    """Shop customer with cumulative purchase/payment totals"""

    __tablename__ = "customer"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False, index=True)
    phone = Column(String(32), nullable=False, default="")
    birth_date = Column(Date, nullable=True)
    total_bought = Column(Money, nullable=False, default=Decimal("0.00"))
    total_paid = Column(Money, nullable=False, default=Decimal("0.00"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Sale(Base):
    """Sale record; credit sales own their installment schedule"""

    __tablename__ = "sale"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customer.id"), nullable=True, index=True)
    sale_date = Column(Date, nullable=False)
    total_value = Column(Money, nullable=False)
    payment_method = Column(Text, nullable=False)
    installments_count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    installments = relationship(
        "Installment",
        cascade="all, delete-orphan",
        order_by="Installment.number",
    )


class Installment(Base):
    """Monthly installment of a credit sale; value is what is still owed"""

    __tablename__ = "installment"
    __table_args__ = (
        Index("ix_installment_customer_status_due", "customer_id", "status", "due_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sale_id = Column(UUID(as_uuid=True), ForeignKey("sale.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customer.id"), nullable=False)
    number = Column(Integer, nullable=False)
    value = Column(Money, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default=InstallmentStatus.PENDING.value)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_domain(self) -> InstallmentSnapshot:
        return InstallmentSnapshot(
            id=self.id,
            customer_id=self.customer_id,
            sale_id=self.sale_id,
            number=self.number,
            value=Decimal(self.value),
            due_date=self.due_date,
            status=InstallmentStatus(self.status),
        )


class CreditPayment(Base):
    """One committed payment allocation, with optional idempotency key"""

    __tablename__ = "credit_payment"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id = Column(UUID(as_uuid=True), ForeignKey("customer.id"), nullable=False, index=True)
    installment_id = Column(UUID(as_uuid=True), ForeignKey("installment.id"), nullable=False)
    amount = Column(Money, nullable=False)
    installments_processed = Column(Integer, nullable=False)
    remaining_credit = Column(Money, nullable=False)
    idempotency_key = Column(Text, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
