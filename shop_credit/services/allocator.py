"""Installment allocator - applies a customer payment inside one transaction"""

import logging
import uuid
from decimal import Decimal
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shop_credit.domain.allocation import cascade_payment, validate_amount
from shop_credit.domain.exceptions import (
    IdempotencyConflictError,
    NotFoundError,
    OutcomeUnknownError,
    PersistenceFailureError,
)
from shop_credit.domain.models import AllocationResult
from shop_credit.infrastructure.database.models import CreditPayment
from shop_credit.infrastructure.database.repositories import (
    CreditPaymentRepository,
    CustomerRepository,
    InstallmentRepository,
)

logger = logging.getLogger(__name__)


def _replayed_result(payment: CreditPayment) -> AllocationResult:
    return AllocationResult(
        installments_processed=payment.installments_processed,
        remaining_credit=Decimal(payment.remaining_credit),
        customer_id=payment.customer_id,
        replayed=True,
        amount=Decimal(payment.amount),
    )


def _ensure_same_payment(payment: CreditPayment, installment_id: uuid.UUID, amount: Decimal) -> None:
    if payment.installment_id != installment_id or Decimal(payment.amount) != amount:
        raise IdempotencyConflictError(
            f"Idempotency key {payment.idempotency_key!r} was already used for "
            f"installment {payment.installment_id} with amount {payment.amount}"
        )


class InstallmentAllocator:
    """
    Cascades payments over a customer's pending installments.

    One call is one database transaction: installment updates, the customer's
    total_paid increment and the payment record commit together or not at all.
    The customer row is locked first, so concurrent payments for the same
    customer are applied one after the other. No internal retries.
    """

    def __init__(self, db: Session):
        self.db = db
        self.customers = CustomerRepository(db)
        self.installments = InstallmentRepository(db)
        self.payments = CreditPaymentRepository(db)

    def allocate(
        self,
        installment_id: uuid.UUID,
        amount_paid,
        idempotency_key: str | None = None,
    ) -> AllocationResult:
        """
        Apply amount_paid to the ledger of the customer owning installment_id.

        Raises:
            InvalidAmountError: amount rejected before any read
            NotFoundError: installment or customer missing, before any write
            PersistenceFailureError: write or commit failed, rolled back
            IdempotencyConflictError: key already committed for another installment or amount
            OutcomeUnknownError: connection lost during commit
        """
        amount = validate_amount(amount_paid)

        try:
            if idempotency_key is not None:
                previous = self.payments.get_by_idempotency_key(idempotency_key)
                if previous is not None:
                    self.db.rollback()
                    _ensure_same_payment(previous, installment_id, amount)
                    return _replayed_result(previous)

            trigger = self.installments.get_installment(installment_id)
            if trigger is None:
                raise NotFoundError(f"Installment {installment_id} not found")

            customer_id = trigger.customer_id
            if self.customers.lock_customer(customer_id) is None:
                raise NotFoundError(f"Customer {customer_id} not found")

            pending = self.installments.list_pending_for_customer(customer_id, lock=True)
            by_id = {inst.id: inst for inst in pending}

            result = cascade_payment([inst.to_domain() for inst in pending], amount)
            result.customer_id = customer_id
            result.amount = amount

            for settlement in result.settlements:
                self.installments.update_installment(
                    by_id[settlement.installment_id],
                    value=settlement.new_value,
                    status=settlement.status,
                )
            self.db.flush()

            self.customers.increment_paid(customer_id, amount)
            self.payments.record_payment(
                customer_id=customer_id,
                installment_id=installment_id,
                amount=amount,
                result=result,
                idempotency_key=idempotency_key,
            )
        except NotFoundError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            if idempotency_key is not None:
                previous = self.payments.get_by_idempotency_key(idempotency_key)
                if previous is not None:
                    _ensure_same_payment(previous, installment_id, amount)
                    return _replayed_result(previous)
            raise PersistenceFailureError(f"Allocation failed: {e.orig}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailureError(f"Allocation failed: {e}") from e

        self._commit(customer_id)
        return result

    def _commit(self, customer_id: uuid.UUID) -> None:
        try:
            self.db.commit()
        except DBAPIError as e:
            self.db.rollback()
            if e.connection_invalidated:
                logger.error(
                    "Allocation commit outcome unknown",
                    extra={"customer_id": str(customer_id), "step": "commit"},
                )
                raise OutcomeUnknownError(
                    f"Commit outcome unknown for customer {customer_id}; re-read before retrying"
                ) from e
            raise PersistenceFailureError(f"Commit failed: {e}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailureError(f"Commit failed: {e}") from e
