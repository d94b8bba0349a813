from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from library_api import create_app
from library_api.config import Config
from library_api.extensions import db
from library_api.models.book import Book
from library_api.models.borrow import Borrow
from library_api.models.enums import UserRole
from library_api.models.user import User
from library_api.utils.auth import Principal
from library_api.utils.dates import utcnow


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-key-that-is-long-enough"
    SECRET_KEY = "test-secret"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role=UserRole.MEMBER.value, name=None, email=None):
        counter["n"] += 1
        user = User(
            name=name or f"User {counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            password_hash="x",
            role=role,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_book(app):
    counter = {"n": 0}

    def _make(total=1, available=None, active=True, title=None, author="Author"):
        counter["n"] += 1
        book = Book(
            isbn=f"978000000{counter['n']:04d}",
            title=title or f"Book {counter['n']}",
            author=author,
            shelf_location=f"A{counter['n']}",
            total_quantity=total,
            available_quantity=total if available is None else available,
            is_active=active,
        )
        db.session.add(book)
        db.session.commit()
        return book

    return _make


@pytest.fixture
def make_borrow(app):
    def _make(user, book, status="PENDING", borrowed_at=None, due_in_days=14,
              approved_at=None, returned_at=None):
        now = utcnow()
        borrowed_at = borrowed_at or now
        borrow = Borrow(
            user_id=user.id,
            book_id=book.id,
            status=status,
            borrowed_at=borrowed_at,
            due_at=now + timedelta(days=due_in_days),
            approved_at=approved_at,
            returned_at=returned_at,
        )
        db.session.add(borrow)
        db.session.commit()
        return borrow

    return _make


@pytest.fixture
def member(make_user):
    return make_user()


@pytest.fixture
def other_member(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN.value, name="Admin")


@pytest.fixture
def as_principal():
    def _principal(user) -> Principal:
        return Principal(id=user.id, role=user.role)

    return _principal


@pytest.fixture
def auth_headers(app):
    def _headers(user):
        token = create_access_token(identity=str(user.id), additional_claims={"role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
