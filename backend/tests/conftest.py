from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import base64
import os
import sys
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "0")

from backend.app.database import Base, get_db
from backend.app.main import app
from backend.app import models
from backend.app.security import generate_password_hash, generate_totp_code


@pytest.fixture(scope="session")
def security_settings() -> dict:
    password = "Adm1nS3cret!"
    otp_secret = base64.b32encode(os.urandom(20)).decode("ascii").rstrip("=")

    os.environ["ADMIN_USERNAME"] = "admin@example.com"
    os.environ["ADMIN_JWT_SECRET"] = base64.urlsafe_b64encode(os.urandom(32)).decode()
    os.environ["ADMIN_TOTP_SECRET"] = otp_secret
    os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "60"
    os.environ["ADMIN_PASSWORD_HASH"] = generate_password_hash(password)

    return {
        "username": os.environ["ADMIN_USERNAME"],
        "password": password,
        "otp_secret": otp_secret,
    }


@pytest.fixture(scope="session", autouse=True)
def _ensure_security_settings(security_settings: dict) -> Generator[None, None, None]:
    yield


@pytest.fixture(autouse=True)
def _isolate_settlement_env(monkeypatch) -> None:
    for name in (
        "FIRST_LEVEL_COMMISSION_RATE",
        "DISCOUNT_WINDOW_HOURS",
        "SETTLEMENT_COUNTRY_CODES",
        "SETTLEMENT_CANCEL_MARKERS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_engine():
    # Services commit, so each test gets its own in-memory database.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session: Session, security_settings: dict) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        otp_code = generate_totp_code(security_settings["otp_secret"])
        response = test_client.post(
            "/auth/token",
            json={
                "username": security_settings["username"],
                "password": security_settings["password"],
                "otp_code": otp_code,
            },
        )
        assert response.status_code == 200
        token = response.json()["access_token"]
        test_client.headers.update({"Authorization": f"Bearer {token}"})
        yield test_client
    app.dependency_overrides.pop(get_db, None)


def make_order(reseller, number: str, **overrides) -> models.Order:
    values = {
        "reseller_id": reseller.id,
        "marketplace_order_number": number,
        "country_code": "US",
        "product_sku": "SKU-LAMP",
        "product_spu": "SPU-LAMP",
        "quantity": 1,
        "buyer_name": "Buyer B",
        "payment_time": datetime(2025, 3, 10, 9, 0),
        "settlement_status": models.OrderSettlementStatus.WAITING,
    }
    values.update(overrides)
    return models.Order(**values)


@pytest.fixture
def order_factory():
    return make_order


@pytest.fixture
def seed_settlement_data(db_session: Session) -> dict:
    """Reseller R referred by A, a $10 unit quote and a ``[5, 10] -> 0.9`` rule."""

    referrer = models.Reseller(
        full_name="Alice Referrer",
        email="alice@example.com",
        referral_code="SYNALICE01",
    )
    db_session.add(referrer)
    db_session.flush()

    reseller = models.Reseller(
        full_name="Rita Reseller",
        email="rita@example.com",
        referral_code="SYNRITA001",
        referrer_id=referrer.id,
    )
    db_session.add(reseller)
    db_session.flush()

    quote = models.Quote(
        reseller_id=reseller.id,
        spu="SPU-LAMP",
        country_code="US",
        quantity=1,
        product_cost=Decimal("6"),
        shipping_cost=Decimal("3"),
        packing_cost=Decimal("0.5"),
        vat_cost=Decimal("0.5"),
        total_price=Decimal("10"),
    )
    rule = models.DiscountRule(
        reseller_id=reseller.id,
        min_quantity=5,
        max_quantity=10,
        discount_rate=Decimal("0.9"),
    )
    first = make_order(
        reseller,
        "O1",
        quantity=2,
        payment_time=datetime(2025, 3, 10, 9, 0),
    )
    second = make_order(
        reseller,
        "O2",
        quantity=5,
        payment_time=datetime(2025, 3, 10, 18, 30),
    )
    db_session.add_all([quote, rule, first, second])
    db_session.commit()

    return {
        "referrer": referrer,
        "reseller": reseller,
        "quote": quote,
        "rule": rule,
        "orders": [first, second],
    }
