import logging
from datetime import date, timedelta

import pytest

from library_service import records
from library_service.errors import LoanStateError, NotFoundError

from conftest import TODAY


def available_copies(service, book_id):
    return next(b for b in service.list_books() if b.id == book_id).available_copies


# ----------------- borrow -----------------

def test_borrow_creates_open_loan(service, catalog):
    due = TODAY + timedelta(days=30)
    loan_id = service.borrow(catalog["reader_id"], catalog["book_id"], due)

    loan = service.get_loan(loan_id)
    assert loan.borrowed_date == TODAY
    assert loan.due_date == due
    assert loan.returned_date is None
    assert loan.is_open
    assert loan.renewals == 0
    assert loan.fine_paid == 0


def test_borrow_takes_a_copy_off_the_shelf(service, catalog):
    service.borrow(catalog["reader_id"], catalog["book_id"], TODAY + timedelta(days=7))
    assert available_copies(service, catalog["book_id"]) == 1


def test_borrow_with_no_copies_left_fails(service, catalog):
    due = TODAY + timedelta(days=7)
    service.borrow(catalog["reader_id"], catalog["book_id"], due)
    service.borrow(catalog["reader_id"], catalog["book_id"], due)

    with pytest.raises(LoanStateError, match="No copies"):
        service.borrow(catalog["reader_id"], catalog["book_id"], due)

    assert len(service.find_loans_by_reader(catalog["reader_id"])) == 2
    assert available_copies(service, catalog["book_id"]) == 0


def test_borrow_unknown_reader_or_book(service, catalog):
    due = TODAY + timedelta(days=7)
    with pytest.raises(NotFoundError):
        service.borrow(9999, catalog["book_id"], due)
    with pytest.raises(NotFoundError):
        service.borrow(catalog["reader_id"], 9999, due)
    assert available_copies(service, catalog["book_id"]) == 2


# ----------------- renew -----------------

def test_renew_bumps_counter_and_keeps_borrowed_date(service, catalog):
    loan_id = service.borrow(catalog["reader_id"], catalog["book_id"], TODAY + timedelta(days=30))

    renewed = service.renew(loan_id, TODAY + timedelta(days=60))
    assert renewed.renewals == 1
    assert renewed.due_date == TODAY + timedelta(days=60)
    assert renewed.borrowed_date == TODAY

    service.renew(loan_id, TODAY + timedelta(days=90))
    loan = service.get_loan(loan_id)
    assert loan.renewals == 2
    assert loan.borrowed_date == TODAY


def test_renew_closed_loan_is_rejected(service, catalog):
    due = TODAY + timedelta(days=30)
    loan_id = service.borrow(catalog["reader_id"], catalog["book_id"], due)
    service.return_loan(loan_id, due, due)

    with pytest.raises(LoanStateError, match="already returned"):
        service.renew(loan_id, due + timedelta(days=30))


def test_renew_unknown_loan(service):
    with pytest.raises(NotFoundError):
        service.renew(42, TODAY)


# ----------------- return -----------------

def test_return_on_due_date_is_free(service, catalog):
    due = TODAY + timedelta(days=30)
    loan_id = service.borrow(catalog["reader_id"], catalog["book_id"], due)

    assert service.return_loan(loan_id, due, due) == 0

    loan = service.get_loan(loan_id)
    assert loan.returned_date == due
    assert not loan.is_open
    assert available_copies(service, catalog["book_id"]) == 2
    assert service.find_payments_by_reader(catalog["reader_id"]) == []


def test_late_return_charges_and_records_payment(service, catalog):
    due = TODAY + timedelta(days=30)
    loan_id = service.borrow(catalog["reader_id"], catalog["book_id"], due)

    fine = service.return_loan(loan_id, due, due + timedelta(days=5))
    assert fine == 7.5

    loan = service.get_loan(loan_id)
    assert loan.fine_paid == 7.5
    assert loan.returned_date == due + timedelta(days=5)

    payments = service.find_payments_by_reader(catalog["reader_id"])
    assert len(payments) == 1
    assert payments[0].loan_id == loan_id
    assert payments[0].amount == 7.5
    assert payments[0].paid_date == due + timedelta(days=5)


def test_return_twice_is_rejected(service, catalog):
    due = TODAY + timedelta(days=30)
    loan_id = service.borrow(catalog["reader_id"], catalog["book_id"], due)
    service.return_loan(loan_id, due, due)

    with pytest.raises(LoanStateError):
        service.return_loan(loan_id, due, due)
    assert available_copies(service, catalog["book_id"]) == 2


def test_return_unknown_loan(service):
    with pytest.raises(NotFoundError):
        service.return_loan(7, TODAY, TODAY)


# ----------------- catalog -----------------

def test_save_category_is_idempotent_by_name(service):
    first = service.save_category("Fiction")
    service.save_category("Biography")
    assert service.save_category("Fiction") == first
    assert [str(c) for c in service.list_categories()] == ["Biography", "Fiction"]


def test_save_publisher_is_idempotent_by_name(service):
    first = service.save_publisher("MIT Press")
    assert service.save_publisher("MIT Press") == first
    assert len(service.list_publishers()) == 1


def test_add_book_upserts_by_isbn(service, catalog):
    book_id = service.add_book(
        records.Book(
            id=0,
            isbn="978-0132350884",
            title="Clean Code (2nd printing)",
            category_id=catalog["category_id"],
            publisher_id=catalog["publisher_id"],
            published_date=None,
            total_copies=5,
            available_copies=4,
        )
    )
    assert book_id == catalog["book_id"]

    books = service.list_books()
    assert len(books) == 1
    detail = books[0]
    assert detail.title == "Clean Code (2nd printing)"
    assert detail.total_copies == 5
    assert detail.available_copies == 4
    assert detail.published_date is None
    assert detail.category_name == "Programming"
    assert detail.publisher_name == "Prentice Hall"
    assert str(detail) == "Clean Code (2nd printing) (978-0132350884)"


def test_add_book_with_unknown_category(service, catalog):
    with pytest.raises(NotFoundError, match="Category"):
        service.add_book(
            records.Book(
                id=0,
                isbn="978-0000000000",
                title="Orphan",
                category_id=999,
                publisher_id=catalog["publisher_id"],
                published_date=None,
                total_copies=1,
                available_copies=1,
            )
        )


def test_list_available_books_skips_empty_shelves(service, catalog):
    due = TODAY + timedelta(days=7)
    service.borrow(catalog["reader_id"], catalog["book_id"], due)
    assert [b.id for b in service.list_available_books()] == [catalog["book_id"]]

    service.borrow(catalog["reader_id"], catalog["book_id"], due)
    assert service.list_available_books() == []
    assert len(service.list_books()) == 1


def test_add_reader_upserts_by_card_number(service, catalog):
    reader_id = service.add_reader(
        records.Reader(
            id=0,
            name="Alice Renamed",
            card_number="CARD-001",
            card_expiry=date(2026, 1, 1),
            outstanding_fine=99.0,
        )
    )
    assert reader_id == catalog["reader_id"]

    (reader,) = service.list_readers()
    assert reader.name == "Alice Renamed"
    assert reader.card_expiry == date(2026, 1, 1)
    assert reader.outstanding_fine == 0


def test_loan_details_join_titles_and_names(service, catalog):
    bob = service.add_reader(
        records.Reader(id=0, name="Bob Example", card_number="CARD-002", card_expiry=date(2025, 1, 1))
    )
    first = service.borrow(catalog["reader_id"], catalog["book_id"], TODAY + timedelta(days=7))
    second = service.borrow(bob, catalog["book_id"], TODAY + timedelta(days=7))

    details = service.list_loan_details()
    # same borrowed date, so newest id first
    assert [d.id for d in details] == [second, first]
    assert details[0].reader_name == "Bob Example"
    assert details[1].book_title == "Clean Code"


def test_find_loans_by_reader_only_returns_theirs(service, catalog):
    bob = service.add_reader(
        records.Reader(id=0, name="Bob Example", card_number="CARD-002", card_expiry=date(2025, 1, 1))
    )
    mine = service.borrow(catalog["reader_id"], catalog["book_id"], TODAY + timedelta(days=7))
    service.borrow(bob, catalog["book_id"], TODAY + timedelta(days=7))

    assert [l.id for l in service.find_loans_by_reader(catalog["reader_id"])] == [mine]


def test_lookup_upserts_are_logged(service, caplog):
    with caplog.at_level(logging.INFO, logger="library_service.service"):
        category_id = service.save_category("Poetry")
        publisher_id = service.save_publisher("Faber")

    assert f"Saved category Poetry as id {category_id}" in caplog.text
    assert f"Saved publisher Faber as id {publisher_id}" in caplog.text
