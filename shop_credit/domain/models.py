"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class InstallmentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class PaymentMethod(str, Enum):
    PIX = "pix"
    CASH = "cash"
    CARD = "card"
    INSTALLMENT = "installment"  # store credit, generates installments


@dataclass
class ScheduledInstallment:
    """Installment produced by the schedule generator, before persistence"""

    number: int
    due_date: date
    value: Decimal


@dataclass
class Installment:
    """Snapshot of a stored installment as seen by the allocator"""

    id: uuid.UUID
    customer_id: uuid.UUID
    sale_id: uuid.UUID
    number: int
    value: Decimal
    due_date: date
    status: InstallmentStatus = InstallmentStatus.PENDING

    def is_overdue(self, today: date) -> bool:
        return self.status == InstallmentStatus.PENDING and self.due_date < today


@dataclass
class Settlement:
    """Change applied to one installment by a payment"""

    installment_id: uuid.UUID
    previous_value: Decimal
    new_value: Decimal
    status: InstallmentStatus

    @property
    def applied(self) -> Decimal:
        return self.previous_value - self.new_value

    @property
    def fully_settled(self) -> bool:
        return self.status == InstallmentStatus.PAID


@dataclass
class AllocationResult:
    """Outcome of cascading one payment over a customer's installments"""

    installments_processed: int
    remaining_credit: Decimal
    settlements: List[Settlement] = field(default_factory=list)
    customer_id: Optional[uuid.UUID] = None
    replayed: bool = False
    amount: Optional[Decimal] = None

    @property
    def overpaid(self) -> bool:
        return self.remaining_credit > 0


@dataclass
class CreditSummary:
    """Outstanding credit position of a customer"""

    customer_id: uuid.UUID
    outstanding: Decimal
    pending_count: int
    overdue_count: int
    informational_debt: Decimal
    next_due_date: Optional[date]
