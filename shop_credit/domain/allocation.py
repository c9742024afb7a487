"""Payment cascade - core business logic for installment credit allocation"""

from decimal import Decimal, InvalidOperation
from typing import Iterable, List
from shop_credit.domain.models import AllocationResult, Installment, InstallmentStatus, Settlement
from shop_credit.domain.exceptions import InvalidAmountError
from shop_credit.utils.money import ZERO, has_cent_precision, round_money, to_decimal

# Absorbs sub-cent residue left by float-era installment values
SETTLEMENT_TOLERANCE = Decimal("0.009")


def validate_amount(amount) -> Decimal:
    """
    Parse and validate a payment amount.

    Raises:
        InvalidAmountError: not numeric, not finite, <= 0, or more than two decimals
    """
    try:
        value = to_decimal(amount)
    except (InvalidOperation, ValueError, TypeError) as e:
        raise InvalidAmountError(f"Malformed amount: {amount!r}") from e

    if not value.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {amount!r}")
    if value <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {value}")
    if not has_cent_precision(value):
        raise InvalidAmountError(f"Amount must have at most two decimal places, got {value}")

    return value


def order_for_settlement(installments: Iterable[Installment]) -> List[Installment]:
    """Earliest obligation first: due_date ascending, then installment number"""
    return sorted(installments, key=lambda inst: (inst.due_date, inst.number))


def cascade_payment(pending: Iterable[Installment], amount: Decimal) -> AllocationResult:
    """
    Apply a payment across pending installments, oldest due date first.

    Requirements:
    - Full settlement when remaining >= value - 0.009: value -> 0, status -> paid,
      remaining drops by the installment's previous value
    - Otherwise partial: value -> round(value - remaining, 2), remaining -> 0, status kept
    - Only full settlements count as processed
    - Stop once remaining <= 0; later installments are untouched
    - Leftover remaining is reported as credit (never negative)

    The installments passed in are not mutated; the returned settlements
    describe the updates to persist.
    """
    remaining = validate_amount(amount)
    processed = 0
    settlements: List[Settlement] = []

    for inst in order_for_settlement(pending):
        if remaining <= 0:
            break
        if inst.status != InstallmentStatus.PENDING:
            continue

        previous_value = inst.value
        if remaining >= previous_value - SETTLEMENT_TOLERANCE:
            settlements.append(
                Settlement(
                    installment_id=inst.id,
                    previous_value=previous_value,
                    new_value=ZERO,
                    status=InstallmentStatus.PAID,
                )
            )
            remaining -= previous_value
            processed += 1
        else:
            new_value = round_money(previous_value - remaining)
            remaining = ZERO
            if new_value != previous_value:
                settlements.append(
                    Settlement(
                        installment_id=inst.id,
                        previous_value=previous_value,
                        new_value=new_value,
                        status=InstallmentStatus.PENDING,
                    )
                )

    # Settling inside the tolerance can overshoot by a fraction of a cent
    remaining_credit = round_money(remaining) if remaining > 0 else ZERO

    return AllocationResult(
        installments_processed=processed,
        remaining_credit=remaining_credit,
        settlements=settlements,
    )
