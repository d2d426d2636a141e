# tests/conftest.py
"""
Shared fixtures for the pytest test suite.
Fixtures defined here are automatically available to all tests.
"""
import io
import os

import pytest
from werkzeug.datastructures import FileStorage

from app import create_app
from extensions import db

VALID_HEADER = 'fullName,email,phone,city,propertyType,bhk,purpose,budgetMin,budgetMax,timeline,source,notes,tags,status'


def make_upload(content, filename='buyers.csv', content_type='text/csv'):
    """Wrap CSV text (or bytes) in a werkzeug FileStorage like a real upload"""
    data = content.encode('utf-8') if isinstance(content, str) else content
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


def make_buyer_data(**overrides):
    """Valid camelCase buyer fields, as a form or API would send them"""
    data = {
        'fullName': 'Rahul Sharma',
        'email': 'rahul@example.com',
        'phone': '9876543210',
        'city': 'Chandigarh',
        'propertyType': 'Apartment',
        'bhk': 'Two',
        'purpose': 'Buy',
        'budgetMin': 4000000,
        'budgetMax': 6000000,
        'timeline': 'ZeroToThree',
        'source': 'Website',
        'notes': 'Prefers a park-facing unit',
        'tags': ['hot', 'investor'],
    }
    data.update(overrides)
    return data


@pytest.fixture(scope='module')
def app():
    """
    A fixture that creates a new Flask application instance for a test module.
    Runs against an in-memory SQLite database created from the models.
    """
    os.environ['FLASK_ENV'] = 'testing'

    app = create_app(config_name='testing')

    with app.app_context():
        db.create_all()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """
    A database session for one test function.

    Services commit for real, so the tables are emptied after each test
    instead of relying on a rolled-back outer transaction.
    """
    yield db.session

    db.session.rollback()
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()


@pytest.fixture
def buyer_service(app, db_session):
    return app.services.get('buyer')


@pytest.fixture
def csv_import_service(app, db_session):
    return app.services.get('csv_import')


@pytest.fixture
def upload():
    """Factory fixture: upload(content, filename=..., content_type=...)"""
    return make_upload


@pytest.fixture
def buyer_data():
    """Factory fixture: buyer_data(**overrides)"""
    return make_buyer_data
