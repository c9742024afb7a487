"""Installment schedule generation for credit sales"""

from datetime import date
from decimal import Decimal
from typing import List
from shop_credit.domain.models import ScheduledInstallment
from shop_credit.domain.exceptions import InvalidSaleError
from shop_credit.utils.date_utils import add_months
from shop_credit.utils.money import to_cents, from_cents


def generate_installment_schedule(
    total_value: Decimal,
    installments_count: int,
    sale_date: date | None = None,
) -> List[ScheduledInstallment]:
    """
    Split a credit sale into monthly installments.

    Requirements:
    - Exactly installments_count installments, numbered 1..N
    - Due dates one calendar month apart, the first one month after the sale
    - Last installment absorbs the rounding remainder so the schedule sums to the total

    Args:
        total_value: Sale total (two decimal places)
        installments_count: Number of monthly payments
        sale_date: Date of the sale (default: today)

    Returns:
        List of ScheduledInstallment ordered by number

    Example:
        R$ 100.00 in 3 → [33.33, 33.33, 33.34]
        10000 cents / 3 = 3333 base, remainder 1
        Last installment: 3333 + 1 = 3334
    """
    if installments_count < 1:
        raise InvalidSaleError(f"installments_count must be at least 1, got {installments_count}")

    total_cents = to_cents(total_value)
    if total_cents <= 0:
        raise InvalidSaleError(f"total_value must be positive, got {total_value}")

    if sale_date is None:
        sale_date = date.today()

    base_cents = total_cents // installments_count
    remainder = total_cents % installments_count

    # Pending installments must owe something
    if base_cents == 0:
        raise InvalidSaleError(
            f"total_value {total_value} is too small for {installments_count} installments"
        )

    schedule = []
    for i in range(1, installments_count + 1):
        cents = base_cents + (remainder if i == installments_count else 0)
        schedule.append(
            ScheduledInstallment(
                number=i,
                due_date=add_months(sale_date, i),
                value=from_cents(cents),
            )
        )

    return schedule
