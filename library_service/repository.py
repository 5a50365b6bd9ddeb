from sqlalchemy import create_engine, select
from sqlalchemy.orm import joinedload, sessionmaker

from . import models, records
from .errors import LoanStateError, NotFoundError


def make_session_factory(database_uri, echo=False, pool_size=10):
    """
    Build the engine (and its connection pool) plus a session factory.
    Tables are created if they don't exist yet.
    """
    options = {"future": True, "echo": echo}
    if not database_uri.startswith("sqlite"):
        options["pool_size"] = pool_size
    engine = create_engine(database_uri, **options)
    models.Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


class LibraryRepository:
    """
    Persistence gateway. Each call runs in its own session; borrow and
    return keep the book's available copies in step inside that same
    transaction.
    """

    def __init__(self, session_factory):
        self.SessionLocal = session_factory

    # ----------------- lookups -----------------

    def _upsert_named(self, model, name):
        session = self.SessionLocal()
        try:
            row = session.execute(
                select(model).where(model.name == name)
            ).scalar_one_or_none()
            if row is None:
                row = model(name=name)
                session.add(row)
                session.commit()
            return row.id
        finally:
            session.close()

    def upsert_category(self, name):
        return self._upsert_named(models.Category, name)

    def upsert_publisher(self, name):
        return self._upsert_named(models.Publisher, name)

    def list_categories(self):
        session = self.SessionLocal()
        try:
            rows = session.execute(
                select(models.Category).order_by(models.Category.name)
            ).scalars().all()
            return [records.Category(id=c.id, name=c.name) for c in rows]
        finally:
            session.close()

    def list_publishers(self):
        session = self.SessionLocal()
        try:
            rows = session.execute(
                select(models.Publisher).order_by(models.Publisher.name)
            ).scalars().all()
            return [records.Publisher(id=p.id, name=p.name) for p in rows]
        finally:
            session.close()

    # ----------------- books -----------------

    def upsert_book(self, book):
        """
        Insert a book, or update every editable column of the one that
        already has this ISBN. Returns the book id.
        """
        session = self.SessionLocal()
        try:
            if session.get(models.Category, book.category_id) is None:
                raise NotFoundError(f"Category {book.category_id} not found")
            if session.get(models.Publisher, book.publisher_id) is None:
                raise NotFoundError(f"Publisher {book.publisher_id} not found")

            row = session.execute(
                select(models.Book).where(models.Book.isbn == book.isbn).with_for_update()
            ).scalar_one_or_none()
            if row is None:
                row = models.Book(isbn=book.isbn)
                session.add(row)
            row.title = book.title
            row.category_id = book.category_id
            row.publisher_id = book.publisher_id
            row.published_date = book.published_date
            row.total_copies = book.total_copies
            row.available_copies = book.available_copies
            session.commit()
            return row.id
        finally:
            session.close()

    def list_books(self, available_only=False):
        session = self.SessionLocal()
        try:
            q = (
                select(models.Book)
                .options(
                    joinedload(models.Book.category),
                    joinedload(models.Book.publisher),
                )
                .order_by(models.Book.id.desc())
            )
            if available_only:
                q = q.where(models.Book.available_copies > 0)
            books = session.execute(q).scalars().all()
            return [records.BookDetail.from_model(b) for b in books]
        finally:
            session.close()

    # ----------------- readers -----------------

    def upsert_reader(self, reader):
        """
        Insert a reader, or rename / re-date the card of the reader that
        already holds this card number. The outstanding fine is only set
        on insert.
        """
        session = self.SessionLocal()
        try:
            row = session.execute(
                select(models.Reader)
                .where(models.Reader.card_number == reader.card_number)
                .with_for_update()
            ).scalar_one_or_none()
            if row is None:
                row = models.Reader(
                    card_number=reader.card_number,
                    outstanding_fine=reader.outstanding_fine,
                )
                session.add(row)
            row.name = reader.name
            row.card_expiry = reader.card_expiry
            session.commit()
            return row.id
        finally:
            session.close()

    def list_readers(self):
        session = self.SessionLocal()
        try:
            rows = session.execute(
                select(models.Reader).order_by(models.Reader.id.desc())
            ).scalars().all()
            return [records.Reader.from_model(r) for r in rows]
        finally:
            session.close()

    # ----------------- loans -----------------

    def borrow_book(self, reader_id, book_id, borrowed_date, due_date):
        session = self.SessionLocal()
        try:
            reader = session.get(models.Reader, reader_id)
            if reader is None:
                raise NotFoundError(f"Reader {reader_id} not found")

            book = session.execute(
                select(models.Book).where(models.Book.id == book_id).with_for_update()
            ).scalar_one_or_none()
            if book is None:
                raise NotFoundError(f"Book {book_id} not found")
            if book.available_copies <= 0:
                raise LoanStateError(f"No copies of '{book.title}' available")

            book.available_copies -= 1
            loan = models.Loan(
                book_id=book.id,
                reader_id=reader.id,
                borrowed_date=borrowed_date,
                due_date=due_date,
                returned_date=None,
                renewals=0,
                fine_paid=0.0,
            )
            session.add(loan)
            session.commit()
            return loan.id
        finally:
            session.close()

    def _open_loan_for_update(self, session, loan_id):
        loan = session.execute(
            select(models.Loan).where(models.Loan.id == loan_id).with_for_update()
        ).scalar_one_or_none()
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        if loan.returned_date is not None:
            raise LoanStateError(
                f"Loan {loan_id} was already returned on {loan.returned_date.isoformat()}"
            )
        return loan

    def renew_loan(self, loan_id, new_due_date):
        session = self.SessionLocal()
        try:
            loan = self._open_loan_for_update(session, loan_id)
            loan.due_date = new_due_date
            loan.renewals += 1
            session.commit()
            return records.Loan.from_model(loan)
        finally:
            session.close()

    def return_book(self, loan_id, returned_date, fine_paid):
        """
        Close the loan, put the copy back on the shelf and record the fine
        payment (if any), all in one transaction.
        """
        session = self.SessionLocal()
        try:
            loan = self._open_loan_for_update(session, loan_id)
            loan.returned_date = returned_date
            loan.fine_paid = fine_paid

            book = session.execute(
                select(models.Book).where(models.Book.id == loan.book_id).with_for_update()
            ).scalar_one()
            book.available_copies += 1

            if fine_paid > 0:
                session.add(
                    models.Payment(
                        loan_id=loan.id,
                        reader_id=loan.reader_id,
                        amount=fine_paid,
                        paid_date=returned_date,
                    )
                )
            session.commit()
            return records.Loan.from_model(loan)
        finally:
            session.close()

    def get_loan(self, loan_id):
        session = self.SessionLocal()
        try:
            loan = session.get(models.Loan, loan_id)
            if loan is None:
                raise NotFoundError(f"Loan {loan_id} not found")
            return records.Loan.from_model(loan)
        finally:
            session.close()

    def find_loans_by_reader(self, reader_id):
        session = self.SessionLocal()
        try:
            loans = session.execute(
                select(models.Loan)
                .where(models.Loan.reader_id == reader_id)
                .order_by(models.Loan.id)
            ).scalars().all()
            return [records.Loan.from_model(l) for l in loans]
        finally:
            session.close()

    def list_loan_details(self):
        session = self.SessionLocal()
        try:
            loans = session.execute(
                select(models.Loan)
                .options(
                    joinedload(models.Loan.book),
                    joinedload(models.Loan.reader),
                )
                .order_by(models.Loan.borrowed_date.desc(), models.Loan.id.desc())
            ).scalars().all()
            return [records.LoanDetail.from_model(l) for l in loans]
        finally:
            session.close()

    def find_payments_by_reader(self, reader_id):
        session = self.SessionLocal()
        try:
            payments = session.execute(
                select(models.Payment)
                .where(models.Payment.reader_id == reader_id)
                .order_by(models.Payment.id)
            ).scalars().all()
            return [records.Payment.from_model(p) for p in payments]
        finally:
            session.close()
