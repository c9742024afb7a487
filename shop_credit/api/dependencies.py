"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from shop_credit.infrastructure.database.session import get_db
from shop_credit.services.allocator import InstallmentAllocator


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_allocator(db: Session = Depends(get_db)) -> InstallmentAllocator:
    """Provide an allocator bound to the request's session"""
    return InstallmentAllocator(db)


def parse_uuid(value: str, what: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {what} ID format")
