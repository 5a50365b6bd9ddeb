import logging
from datetime import date

logger = logging.getLogger(__name__)


def calculate_fine(due_date, returned_date, daily_rate):
    """
    Fine for a copy returned on ``returned_date``: whole overdue days times
    the daily rate, or 0 when it comes back on or before the due date.
    """
    if returned_date > due_date:
        overdue_days = (returned_date - due_date).days
        return overdue_days * daily_rate
    return 0


class LibraryService:
    """
    Loan lifecycle (borrow / renew / return) on top of the repository,
    plus the catalog calls the forms need.
    """

    def __init__(self, repository, daily_fine, today=date.today):
        self.repository = repository
        self.daily_fine = daily_fine
        self.today = today

    # ----------------- catalog -----------------

    def add_book(self, book):
        book_id = self.repository.upsert_book(book)
        logger.info("Saved book %s (%s) as id %s", book.title, book.isbn, book_id)
        return book_id

    def add_reader(self, reader):
        reader_id = self.repository.upsert_reader(reader)
        logger.info("Saved reader %s (card %s) as id %s", reader.name, reader.card_number, reader_id)
        return reader_id

    def save_category(self, name):
        category_id = self.repository.upsert_category(name)
        logger.info("Saved category %s as id %s", name, category_id)
        return category_id

    def save_publisher(self, name):
        publisher_id = self.repository.upsert_publisher(name)
        logger.info("Saved publisher %s as id %s", name, publisher_id)
        return publisher_id

    def list_categories(self):
        return self.repository.list_categories()

    def list_publishers(self):
        return self.repository.list_publishers()

    def list_books(self):
        return self.repository.list_books()

    def list_available_books(self):
        return self.repository.list_books(available_only=True)

    def list_readers(self):
        return self.repository.list_readers()

    # ----------------- loans -----------------

    def borrow(self, reader_id, book_id, due_date):
        loan_id = self.repository.borrow_book(reader_id, book_id, self.today(), due_date)
        logger.info(
            "Reader %s borrowed book %s as loan %s, due %s",
            reader_id, book_id, loan_id, due_date.isoformat(),
        )
        return loan_id

    def renew(self, loan_id, new_due_date):
        loan = self.repository.renew_loan(loan_id, new_due_date)
        logger.info(
            "Renewed loan %s until %s (renewal #%s)",
            loan_id, new_due_date.isoformat(), loan.renewals,
        )
        return loan

    def return_loan(self, loan_id, due_date, returned_date):
        fine = calculate_fine(due_date, returned_date, self.daily_fine)
        self.repository.return_book(loan_id, returned_date, fine)
        logger.info("Loan %s returned on %s, fine %s", loan_id, returned_date.isoformat(), fine)
        return fine

    def get_loan(self, loan_id):
        return self.repository.get_loan(loan_id)

    def find_loans_by_reader(self, reader_id):
        return self.repository.find_loans_by_reader(reader_id)

    def find_payments_by_reader(self, reader_id):
        return self.repository.find_payments_by_reader(reader_id)

    def list_loan_details(self):
        return self.repository.list_loan_details()
