"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from shop_credit.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_allocation(
    request_id: str,
    customer_id: str,
    installment_id: str,
    amount: Decimal,
    installments_processed: int,
    remaining_credit: Decimal,
    replayed: bool,
    duration_ms: float,
) -> None:
    """Log structured allocation outcome for reconciliation"""
    logging.info(
        "Allocation completed",
        extra={
            "request_id": request_id,
            "customer_id": customer_id,
            "installment_id": installment_id,
            "step": "allocation_complete",
            "amount": str(amount),
            "installments_processed": installments_processed,
            "remaining_credit": str(remaining_credit),
            "replayed": replayed,
            "duration_ms": duration_ms,
        },
    )


def log_sale(request_id: str, sale_id: str, payment_method: str, total_value: Decimal, installments: int) -> None:
    logging.info(
        "Sale recorded",
        extra={
            "request_id": request_id,
            "sale_id": sale_id,
            "step": "sale_recorded",
            "payment_method": payment_method,
            "total_value": str(total_value),
            "installments": installments,
        },
    )
