"""
Pytest fixtures for marketplace backend tests.

Provides an in-memory database, a test client, and factories for users,
categories and products.
"""

import itertools
from decimal import Decimal

import pytest
from marketplace import create_app
from marketplace.extensions import db
from marketplace.models import Category, Product, ROLE_ADMIN, ROLE_USER, User
from marketplace.services.auth_service import hash_password


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'APP_ENV': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def client(app, db_session):
    """Test client; requests share the test's app context and session."""
    return app.test_client()


@pytest.fixture(scope='function')
def make_user(db_session):
    counter = itertools.count(1)

    def _make(name=None, email=None, password=PASSWORD, role=ROLE_USER, is_active=True, **extra):
        n = next(counter)
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@example.com",
            password_hash=hash_password(password),
            role=role,
            is_active=is_active,
            **extra,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope='function')
def buyer(make_user):
    return make_user(name="Bea Buyer", email="buyer@example.com", address="1 Market St")


@pytest.fixture(scope='function')
def producer(make_user):
    return make_user(name="Pete Producer", email="producer@example.com", phone="555-0100")


@pytest.fixture(scope='function')
def outsider(make_user):
    return make_user(name="Olive Outsider", email="outsider@example.com")


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user(name="Ada Admin", email="admin@example.com", role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def category(db_session):
    category = Category(name="Vegetables", description="Fresh from the farm", icon="carrot")
    db_session.add(category)
    db_session.commit()
    return category


@pytest.fixture(scope='function')
def make_product(db_session, producer, category):
    counter = itertools.count(1)

    def _make(name=None, price="10.00", stock=5, owner=None, category_id=None, **extra):
        n = next(counter)
        product = Product(
            name=name or f"Product {n}",
            description="Locally grown",
            price=Decimal(price),
            stock=stock,
            user_id=(owner or producer).id,
            category_id=category_id or category.id,
            **extra,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope='function')
def product(make_product):
    """Carrots: price 10.00, stock 5, owned by the producer."""
    return make_product(name="Carrots", price="10.00", stock=5)


@pytest.fixture(scope='function')
def auth_headers(client):
    """Log a user in through the API and return the Authorization header."""
    def _headers(user, password=PASSWORD):
        token = get_auth_token(client, user.email, password)
        assert token, f"login failed for {user.email}"
        return {'Authorization': f'Bearer {token}'}

    return _headers


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None
