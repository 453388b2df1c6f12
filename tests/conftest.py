"""Shared test fixtures and helpers."""

from datetime import date, datetime, time, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.availability import WeeklyAvailabilitySlot
from models.provider import Provider
from models.service import Service
from models.user import Role, User
from security.password import hash_password
from utils.seed import seed_roles

PASSWORD = "correct-horse-1"


class AppTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SEED_ROLES_ON_STARTUP = False
    SECRET_KEY = "test-secret"
    ENCRYPTION_KEY = None
    BCRYPT_ROUNDS = 4
    SMTP_HOST = None
    SMTP_FROM_EMAIL = None
    RESEND_API_KEY = None
    OPENAI_API_KEY = None
    SLOTS_HONOR_BLOCKED_DATES = False
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(AppTestConfig)
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email: str, role: str, full_name: str = None) -> User:
    user = User(email=email, password_hash=hash_password(PASSWORD, rounds=4), full_name=full_name)
    user.roles.append(Role.query.filter_by(name=role).first())
    db.session.add(user)
    db.session.commit()
    return user


def make_provider(email: str = "owner@salon.test", business_name: str = "Sunny Salon") -> Provider:
    user = make_user(email, "PROVIDER", full_name="Sam Owner")
    slug = business_name.lower().replace(" ", "-")
    provider = Provider(user_id=user.id, business_name=business_name, business_slug=slug)
    db.session.add(provider)
    db.session.commit()
    return provider


def make_service(provider: Provider, title: str = "Haircut", price: int = 2500) -> Service:
    service = Service(provider_id=provider.id, title=title, price=price, duration_minutes=30)
    db.session.add(service)
    db.session.commit()
    return service


def add_slot(provider: Provider, day_of_week: int, start: str, end: str, is_available: bool = True):
    sh, sm = (int(p) for p in start.split(":"))
    eh, em = (int(p) for p in end.split(":"))
    row = WeeklyAvailabilitySlot(
        provider_id=provider.id,
        day_of_week=day_of_week,
        start_time=time(sh, sm),
        end_time=time(eh, em),
        is_available=is_available,
    )
    db.session.add(row)
    db.session.commit()
    return row


def next_monday(weeks_ahead: int = 1) -> date:
    """A Monday at least a week from today, so bookings on it are in the future."""
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) % 7 + 7 * weeks_ahead)


def at(day: date, hhmm: str) -> datetime:
    h, m = (int(p) for p in hhmm.split(":"))
    return datetime.combine(day, time(h, m))


def login(client, email: str, password: str = PASSWORD):
    """Logs the client in and attaches the CSRF header for later writes."""
    resp = client.post("/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    client.environ_base["HTTP_X_CSRF_TOKEN"] = client.get_cookie("csrf_token").value
    return resp


@pytest.fixture
def provider(app):
    return make_provider()


@pytest.fixture
def service(provider):
    return make_service(provider)


@pytest.fixture
def customer(app):
    return make_user("pat@customer.test", "CUSTOMER", full_name="Pat Customer")


@pytest.fixture
def provider_client(app, provider):
    c = app.test_client()
    login(c, provider.user.email)
    return c


@pytest.fixture
def customer_client(app, customer):
    c = app.test_client()
    login(c, customer.email)
    return c
