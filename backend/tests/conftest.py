import hashlib
import hmac
import json
import time
from decimal import Decimal
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.config import Config
from fastapi.testclient import TestClient
from moto import mock_aws
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from spreadmarket.auth import create_session_token
from spreadmarket.config import settings
from spreadmarket.database import get_db, init_db
from spreadmarket.limiter import get_rate_limiter, limiter, rate_limiter
from spreadmarket.main import app
from spreadmarket.models.entities import Category, Listing, ListingTag, User
from spreadmarket.services.payments import get_payment_service
from spreadmarket.services.s3 import S3Service, get_storage


@pytest.fixture
def s3_client():
    """Provide a mocked S3 client with a test bucket."""
    with mock_aws():
        client = boto3.client(
            "s3", region_name=settings.AWS_REGION, config=Config(signature_version="s3v4")
        )
        client.create_bucket(Bucket=settings.S3_BUCKET)
        yield client


@pytest.fixture
def storage(s3_client):
    return S3Service(client=s3_client)


@pytest.fixture
def db():
    """In-memory SQLite session shared with the app through get_db."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def payments():
    service = MagicMock()
    service.create_payment_intent.return_value = {
        "id": "pi_test_123",
        "client_secret": "pi_test_123_secret_abc",
    }
    return service


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    rate_limiter.reset()
    yield


@pytest.fixture
def client(db, storage, payments):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_payment_service] = lambda: payments
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---------- Factories ----------


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(is_creator=False, **fields):
        counter["n"] += 1
        user = User(
            email=fields.pop("email", f"user{counter['n']}@example.com"),
            first_name=fields.pop("first_name", f"User{counter['n']}"),
            is_creator=is_creator,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_category(db):
    def _make(name="Financial Models", slug="financial-models", description=None):
        category = Category(name=name, slug=slug, description=description)
        db.add(category)
        db.commit()
        return category

    return _make


@pytest.fixture
def make_listing(db):
    def _make(creator, **fields):
        tags = fields.pop("tags", [])
        listing = Listing(
            creator_id=creator.id,
            title=fields.pop("title", "Budget template"),
            description=fields.pop("description", "Monthly household budget"),
            price=Decimal(str(fields.pop("price", "19.99"))),
            file_url=fields.pop(
                "file_url",
                f"https://{settings.S3_BUCKET}.s3.amazonaws.com/uploads/{creator.id}/1700000000000-budget.xlsx",
            ),
            file_type=fields.pop("file_type", "xlsx"),
            tags=[ListingTag(tag=t) for t in tags],
            **fields,
        )
        db.add(listing)
        db.commit()
        return listing

    return _make


def auth_headers(user):
    return {"Authorization": f"Bearer {create_session_token(user.id)}"}


# ---------- Webhooks de Stripe ----------


def sign(payload: str, secret: str = settings.STRIPE_WEBHOOK_SECRET) -> str:
    """Header Stripe-Signature valido para `payload`."""
    timestamp = int(time.time())
    digest = hmac.new(secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def succeeded_event(listing, buyer, intent_id="pi_test_1", amount=1999, fee=200, earnings=1799) -> str:
    return json.dumps(
        {
            "id": "evt_test_1",
            "object": "event",
            "type": "payment_intent.succeeded",
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "amount": amount,
                    "metadata": {
                        "listingId": listing.id,
                        "buyerId": buyer.id,
                        "creatorId": listing.creator_id,
                        "platformFee": str(fee),
                        "creatorEarnings": str(earnings),
                    },
                }
            },
        }
    )
