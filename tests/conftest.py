import os

# Settings are read at import time; provide test defaults before importing wealthmap
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-wealth-map")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from datetime import date, datetime, timedelta, UTC
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jose import jwt

from wealthmap.config import settings
from wealthmap.core.security import create_access_token, hash_password
from wealthmap.database import get_db, get_session_factory
# Import all model classes to ensure they're registered with SQLAlchemy
from wealthmap.models import (
    Base,
    Company,
    Owner,
    Property,
    PropertyOwnership,
    PropertyTransaction,
    User,
)
from wealthmap.models.owner import OwnerType
from wealthmap.models.property import PropertyType, TransactionType
from wealthmap.models.role import UserRole
# Import FastAPI app AFTER model imports
from wealthmap.main import app

TEST_PASSWORD = "correct-horse-battery"

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Activity records are written through their own sessions
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def create_test_token(
    user_id: int,
    company_id: int = 1,
    role: str = "admin",
    expired: bool = False,
    issued_at: datetime | None = None,
    mfa: bool = False,
) -> str:
    """
    Generate JWT token for testing.

    Args:
        user_id: User ID to embed in 'sub' claim
        expired: If True, create expired token
        issued_at: Override the 'iat' claim
        mfa: Value of the 'mfa' claim
    """
    now = datetime.now(UTC)
    exp = now - timedelta(minutes=5) if expired else now + timedelta(minutes=15)
    iat = issued_at or now
    payload = {
        "sub": str(user_id),
        "company": company_id,
        "role": role,
        "mfa": mfa,
        "exp": exp,
        "iat": int(iat.timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")


def headers_for(user: User, mfa: bool = False) -> dict:
    token = create_access_token(user.id, user.company_id, user.role.value, mfa_verified=mfa)
    return {"Authorization": f"Bearer {token}"}


def make_user(db, company: Company, role: UserRole, email: str, **fields) -> User:
    user = User(
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        first_name=fields.pop("first_name", role.value.title()),
        last_name=fields.pop("last_name", "Tester"),
        role=role,
        company_id=company.id,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def company(db_session):
    company = Company(name="Acme Realty", slug="acme-realty")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture
def other_company(db_session):
    company = Company(name="Globex Estates", slug="globex-estates")
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture
def admin_user(db_session, company):
    user = make_user(db_session, company, UserRole.ADMIN, "admin@acme.com")
    company.admin_user_id = user.id
    db_session.commit()
    return user


@pytest.fixture
def manager_user(db_session, company):
    return make_user(db_session, company, UserRole.MANAGER, "manager@acme.com")


@pytest.fixture
def analyst_user(db_session, company):
    return make_user(db_session, company, UserRole.ANALYST, "analyst@acme.com")


@pytest.fixture
def viewer_user(db_session, company):
    return make_user(db_session, company, UserRole.VIEWER, "viewer@acme.com")


@pytest.fixture
def other_admin(db_session, other_company):
    return make_user(db_session, other_company, UserRole.ADMIN, "admin@globex.com")


@pytest.fixture
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def manager_headers(manager_user):
    return headers_for(manager_user)


@pytest.fixture
def analyst_headers(analyst_user):
    return headers_for(analyst_user)


@pytest.fixture
def viewer_headers(viewer_user):
    return headers_for(viewer_user)


@pytest.fixture
def other_admin_headers(other_admin):
    return headers_for(other_admin)


@pytest.fixture
def properties(db_session):
    """
    Reference data:

    - 1 Main St, Austin TX: residential, 450k, owned by Jane Doe (net worth 2M)
    - 200 Market St, Austin TX: commercial, 3.2M, owned by Doe Holdings LLC
    - 9 Harbor Rd, Miami FL: residential, 1.5M, owned by Jane Doe
    - 77 Mill Ln, Denver CO: industrial, 8M, owned by Doe Holdings LLC
    - 5 Ranch Rd, Austin TX: land, 120k, owned by Bob Roe
    """
    jane = Owner(
        owner_type=OwnerType.INDIVIDUAL,
        name="Jane Doe",
        city="Austin",
        state="TX",
        estimated_net_worth=2_000_000,
        wealth_confidence=80,
        wealth_tier="high",
        income_estimate=250_000,
    )
    holdings = Owner(
        owner_type=OwnerType.ENTITY,
        name="Doe Holdings LLC",
        city="Austin",
        state="TX",
        estimated_net_worth=15_000_000,
        wealth_confidence=60,
        wealth_tier="ultra",
    )
    bob = Owner(
        owner_type=OwnerType.INDIVIDUAL,
        name="Bob Roe",
        city="Austin",
        state="TX",
        estimated_net_worth=300_000,
        wealth_confidence=50,
        wealth_tier="mass",
    )
    db_session.add_all([jane, holdings, bob])
    db_session.flush()

    def prop(street, city, state, zip_code, lat, lng, ptype, value, owner, **extra):
        p = Property(
            street=street,
            city=city,
            state=state,
            zip_code=zip_code,
            country="USA",
            latitude=lat,
            longitude=lng,
            property_type=ptype,
            estimated_value=value,
            **extra,
        )
        p.ownerships.append(PropertyOwnership(owner=owner, ownership_percentage=100))
        db_session.add(p)
        return p

    main_st = prop(
        "1 Main St", "Austin", "TX", "78701", 30.2672, -97.7431,
        PropertyType.RESIDENTIAL, 450_000, jane, year_built=1995, description="Craftsman bungalow",
    )
    market_st = prop(
        "200 Market St", "Austin", "TX", "78702", 30.2700, -97.7400,
        PropertyType.COMMERCIAL, 3_200_000, holdings,
    )
    harbor_rd = prop(
        "9 Harbor Rd", "Miami", "FL", "33101", 25.7617, -80.1918,
        PropertyType.RESIDENTIAL, 1_500_000, jane,
    )
    mill_ln = prop(
        "77 Mill Ln", "Denver", "CO", "80202", 39.7392, -104.9903,
        PropertyType.INDUSTRIAL, 8_000_000, holdings,
    )
    ranch_rd = prop(
        "5 Ranch Rd", "Austin", "TX", "78745", 30.2000, -97.8000,
        PropertyType.LAND, 120_000, bob,
    )
    main_st.transactions.append(
        PropertyTransaction(
            transaction_type=TransactionType.SALE,
            date=date(2019, 6, 1),
            price=380_000,
            seller="Previous Owner",
            buyer="Jane Doe",
        )
    )
    db_session.commit()
    return {
        "main_st": main_st,
        "market_st": market_st,
        "harbor_rd": harbor_rd,
        "mill_ln": mill_ln,
        "ranch_rd": ranch_rd,
        "jane": jane,
        "holdings": holdings,
        "bob": bob,
    }
