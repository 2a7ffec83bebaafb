"""Společné fixtures: SQLite v paměti, dočasný PUBLIC_DIR, uživatelé a tokeny."""

import os
import tempfile

# musí být nastavené dřív, než se naimportuje database/config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["OPENAI_API_KEY"] = "test-key"
os.environ.setdefault("PUBLIC_DIR", tempfile.mkdtemp(prefix="doormate-public-"))

import copy
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth_utils import hash_password
from database import Base, get_db
from jwt_utils import create_user_token
from main import app
from models import User
from pdf_utils import _page_vectors

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


DOOR_PAYLOAD = {
    "product_type": "door",
    "name": "High-Speed Roll-Up Door HS100",
    "model": "HS100",
    "sku": "HS100-001",
    "brand_id": "dynaco",
    "brand": {"id": "dynaco", "name": "Dynaco"},
    "category": "High-Speed Doors",
    "description": "Advanced high-speed roll-up door for intensive industrial use",
    "short_description": "Industrial high-speed door",
    "door_type": "high-speed",
    "operation_type": "automatic",
    "materials": ["PVC", "Aluminum"],
    "safety_features": ["Light Curtain", "Safety Edge"],
    "specifications": [{"key": "Max Opening Speed", "value": 2.5, "unit": "m/s"}],
    "features": ["Self-reinserting curtain"],
    "search_keywords": ["rapid door", "roll-up door"],
}

MOTOR_PAYLOAD = {
    "product_type": "motor",
    "name": "Industrial Door Motor M300",
    "model": "M300",
    "sku": "M300-001",
    "brand_id": "nice",
    "brand": {"id": "nice", "name": "Nice"},
    "category": "Motors",
    "description": "Powerful motor for industrial sectional doors",
    "motor_type": "sectional",
    "power_supply": "230V AC",
    "power_rating": 750,
    "torque": 70,
    "speed_rpm": 24,
    "duty_cycle": "60%",
    "ip_rating": "IP54",
    "temperature_range": {"min": -20, "max": 55, "unit": "C"},
}


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db_session):
    """Vytvoří uživatele přímo v DB a vrátí (user, hlavičky s tokenem)."""

    def _make(username="jan_novak", email=None, password="heslo1234", role="user"):
        user = User(
            email=email or f"{username}@example.com",
            username=username,
            password_hash=hash_password(password),
            first_name="Jan",
            last_name="Novák",
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user, {"Authorization": f"Bearer {create_user_token(user.id)}"}

    return _make


@pytest.fixture
def user_headers(make_user):
    return make_user()[1]


@pytest.fixture
def admin_headers(make_user):
    return make_user(username="admin", role="admin")[1]


@pytest.fixture
def door_payload():
    return copy.deepcopy(DOOR_PAYLOAD)


@pytest.fixture
def motor_payload():
    return copy.deepcopy(MOTOR_PAYLOAD)


@pytest.fixture
def create_product(client, admin_headers):
    def _create(payload=None, **overrides):
        body = copy.deepcopy(payload or DOOR_PAYLOAD)
        body.update(overrides)
        resp = client.post("/api/products", json=body, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _create


class FakeEmbeddings:
    """Náhrada za client.embeddings: vektor = počty slov ze slovníku (+ malý bias)."""

    VOCABULARY = ("header", "install", "safety", "tools", "power", "emergency", "brake", "curtain")

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def create(self, input, model, dimensions):
        self.calls.append({"input": list(input), "model": model, "dimensions": dimensions})
        if self.error:
            raise self.error
        data = [SimpleNamespace(index=i, embedding=self.vector(text)) for i, text in enumerate(input)]
        # API pořadí nezaručuje, řadí se podle index
        return SimpleNamespace(data=list(reversed(data)))

    @classmethod
    def vector(cls, text):
        text = text.lower()
        return [float(text.count(word)) for word in cls.VOCABULARY] + [0.01]


@pytest.fixture
def fake_embeddings():
    _page_vectors.clear()
    yield FakeEmbeddings
    _page_vectors.clear()
