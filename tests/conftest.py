"""Pytest fixtures for testing"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from shop_credit.api.main import create_app
from shop_credit.infrastructure.database.models import Base, Customer, Installment, Sale
from shop_credit.infrastructure.database.session import engine_options, get_db
from shop_credit.domain.models import InstallmentStatus, PaymentMethod


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, **engine_options(TEST_DATABASE_URL))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def customer(db: Session) -> Customer:
    """Customer with no purchases yet"""
    c = Customer(name="Maria Souza", phone="11999990000", total_bought=Decimal("0.00"), total_paid=Decimal("0.00"))
    db.add(c)
    db.commit()
    return c


@pytest.fixture
def make_installments(db: Session) -> Callable[..., List[Installment]]:
    """
    Build a credit sale whose installments have the given values.

    Due dates are one month apart starting at first_due, unless due_dates is given.
    """

    def _make(
        customer: Customer,
        values: List[str],
        first_due: date | None = None,
        due_dates: List[date] | None = None,
    ) -> List[Installment]:
        first_due = first_due or date.today() + timedelta(days=30)
        if due_dates is None:
            due_dates = [first_due + timedelta(days=30 * i) for i in range(len(values))]

        total = sum((Decimal(v) for v in values), Decimal("0"))
        sale = Sale(
            customer_id=customer.id,
            sale_date=date.today(),
            total_value=total,
            payment_method=PaymentMethod.INSTALLMENT.value,
            installments_count=len(values),
        )
        db.add(sale)
        db.flush()

        installments = [
            Installment(
                sale_id=sale.id,
                customer_id=customer.id,
                number=i + 1,
                value=Decimal(v),
                due_date=due,
                status=InstallmentStatus.PENDING.value,
            )
            for i, (v, due) in enumerate(zip(values, due_dates))
        ]
        db.add_all(installments)
        db.commit()
        return installments

    return _make
