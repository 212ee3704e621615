"""
Pytest fixtures for storefront provisioning tests.

Provides a fresh in-memory database per test, the Flask test client, and
ready-made registration payloads.
"""

import pytest

from storefront import create_app
from storefront.extensions import db
from storefront.time_utils import utcnow


TEST_CONFIG = {
    'TESTING': True,
    'APP_ENV': 'testing',
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'SECRET_KEY': 'test-secret-key',
    'JWT_SECRET_KEY': 'test-jwt-secret',
    'BCRYPT_ROUNDS': 4,
    'FRONTEND_URL': 'http://frontend.test',
}

PASSWORD = "Password123"


def make_app(**overrides):
    config = dict(TEST_CONFIG)
    config.update(overrides)
    return create_app(config)


@pytest.fixture(scope='function')
def app_overrides():
    """Override in a test module to tweak configuration."""
    return {}


@pytest.fixture(scope='function')
def app(app_overrides):
    """Create application with an empty schema for one test."""
    app = make_app(**app_overrides)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    return db.session


@pytest.fixture(scope='function')
def customer_payload():
    return {
        "email": "ada@example.com",
        "password": PASSWORD,
        "firstName": "Ada",
        "lastName": "Lovelace",
    }


def store_owner_payload(**overrides):
    """Complete French store-owner registration, owner aged 30."""
    payload = {
        "email": "marie@example.fr",
        "password": PASSWORD,
        "storeName": "Chez Marie",
        "businessName": "Chez Marie SARL",
        "businessType": "llc",
        "businessAddress": {
            "street": "12 rue de la Paix",
            "city": "Paris",
            "postalCode": "75002",
            "country": "FR",
        },
        "ownerFirstName": "Marie",
        "ownerLastName": "Curie",
        "ownerPhone": "+33123456789",
        "ownerDateOfBirth": f"{utcnow().year - 30}-05-17",
        "acceptedTerms": True,
        "acceptedPrivacyPolicy": True,
        "acceptedDataProcessing": True,
        "marketingConsent": False,
        "countrySpecificFields": {
            "siren": "123456789",
            "siret": "12345678900012",
            "frenchBusinessType": "sarl",
        },
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope='function')
def registered_customer(client, customer_payload):
    """Register a local customer through the API; returns the response body."""
    resp = client.post("/api/auth/customer/register", json=customer_payload)
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


@pytest.fixture(scope='function')
def registered_owner(client):
    resp = client.post("/api/auth/store/register", json=store_owner_payload())
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def count(model):
    return db.session.query(model).count()

