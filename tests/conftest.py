from datetime import date

import pytest

from library_service import records
from library_service.app import create_app
from library_service.config import Config
from library_service.repository import LibraryRepository, make_session_factory
from library_service.service import LibraryService

TODAY = date(2024, 3, 1)
API_KEY = "test-service-key"


class ConfigForTests(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SERVICE_API_KEY = API_KEY
    DAILY_FINE_RATE = 1.5
    DEFAULT_LOAN_DAYS = 30


@pytest.fixture
def repository(tmp_path):
    # Each test gets its own database file
    db_file = tmp_path / "library_test.db"
    return LibraryRepository(make_session_factory(f"sqlite:///{db_file}"))


@pytest.fixture
def service(repository):
    return LibraryService(repository, 1.5, today=lambda: TODAY)


@pytest.fixture
def catalog(service):
    """One category, publisher and reader, plus a book with two copies."""
    category_id = service.save_category("Programming")
    publisher_id = service.save_publisher("Prentice Hall")
    reader_id = service.add_reader(
        records.Reader(id=0, name="Alice Example", card_number="CARD-001", card_expiry=date(2025, 3, 1))
    )
    book_id = service.add_book(
        records.Book(
            id=0,
            isbn="978-0132350884",
            title="Clean Code",
            category_id=category_id,
            publisher_id=publisher_id,
            published_date=date(2008, 8, 1),
            total_copies=2,
            available_copies=2,
        )
    )
    return {
        "category_id": category_id,
        "publisher_id": publisher_id,
        "reader_id": reader_id,
        "book_id": book_id,
    }


@pytest.fixture
def app(service):
    return create_app(ConfigForTests, service=service)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def headers():
    return {"X-API-Key": API_KEY}
