"""Shared fixtures: a fresh app on a temporary SQLite file per test, plus logged-in clients."""
import re
from urllib.parse import urlsplit

import pytest

from app import create_app
from extensions import db
from mail import get_outbox
from models import User

PASSWORD = 'secret123'


@pytest.fixture
def app(tmp_path):
    app = create_app('testing', {'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}"})
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def signup(client, email='alice@example.com', full_name='Alice Example', password=PASSWORD):
    return client.post('/api/auth/signup', json={
        'fullName': full_name,
        'email': email,
        'password': password,
        'confirmPassword': password,
    })


def mark_verified(app, email):
    with app.app_context():
        user = User.query.filter_by(email=email).first()
        user.email_verified = True
        db.session.commit()
        return user.id


def login(client, email='alice@example.com', password=PASSWORD):
    return client.post('/api/auth/login', json={'email': email, 'password': password})


def link_path(link):
    """Path plus query string of an emailed link, for the test client"""
    parts = urlsplit(link)
    return f'{parts.path}?{parts.query}'


def last_link(app):
    with app.app_context():
        text = get_outbox()[-1]['text']
    return re.search(r'(https?://\S+)', text).group(1)


def make_user_client(app, email, full_name='Test User'):
    client = app.test_client()
    assert signup(client, email=email, full_name=full_name).status_code == 201
    mark_verified(app, email)
    assert login(client, email=email).status_code == 200
    return client


@pytest.fixture
def auth_client(app):
    return make_user_client(app, 'alice@example.com', 'Alice Example')


@pytest.fixture
def other_client(app):
    return make_user_client(app, 'bob@example.com', 'Bob Example')


def add_transaction(client, **overrides):
    payload = {
        'type': 'expense',
        'categoryGroup': 'Expense',
        'category': 'Food',
        'amount': 100,
        'date': '2024-03-10',
        'notes': 'Dinner',
    }
    payload.update(overrides)
    response = client.post('/api/transactions', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['transaction']


def add_stock(client, **overrides):
    payload = {
        'symbol': 'reliance',
        'name': 'Reliance Industries',
        'quantity': 10,
        'buyPrice': 2500,
        'type': 'BUY',
        'broker': 'Zerodha',
        'date': '2024-03-01',
    }
    payload.update(overrides)
    response = client.post('/api/stocks', json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()['stock']
