import pytest

from bookstall import create_app, db
from bookstall.utils.repositories import Store

from factories import make_book, make_user


@pytest.fixture
def app():
    app = create_app('testing')
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    """Store bound to the session of a pushed app context, for service-level tests"""
    with app.app_context():
        yield Store(db.session)
        db.session.rollback()


@pytest.fixture
def customer(store):
    return make_user(store, role='customer')


@pytest.fixture
def seller(store):
    return make_user(store, role='seller')


@pytest.fixture
def admin(store):
    return make_user(store, role='admin')


@pytest.fixture
def accounts(app):
    """Users and a book for route tests, as plain ids and emails.

    Route tests must not hold an app context open across requests, so the
    rows are created in a short-lived context and only their keys leak out.
    """
    with app.app_context():
        store = Store(db.session)
        customer = make_user(store, role='customer')
        seller = make_user(store, role='seller')
        other_seller = make_user(store, role='seller')
        admin = make_user(store, role='admin')
        book = make_book(store, seller, price=100.0, stock=2, title='The Hobbit', category='Fantasy')
        data = {
            'customer': customer.email,
            'customer_id': customer.id,
            'seller': seller.email,
            'seller_id': seller.id,
            'other_seller': other_seller.email,
            'admin': admin.email,
            'admin_id': admin.id,
            'book_id': book.id
        }
        db.session.remove()
    return data

