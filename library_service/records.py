from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional


class _Record:
    def to_dict(self):
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, date):
                data[key] = value.isoformat()
        return data


@dataclass(frozen=True)
class Category(_Record):
    id: int
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Publisher(_Record):
    id: int
    name: str

    def __str__(self):
        return self.name


@dataclass(frozen=True)
class Book(_Record):
    """A catalog entry as entered on the book form.

    ``id`` is 0 for a book that has not been saved yet.
    """

    id: int
    isbn: str
    title: str
    category_id: int
    publisher_id: int
    published_date: Optional[date]
    total_copies: int
    available_copies: int


@dataclass(frozen=True)
class BookDetail(_Record):
    """A book joined with its category and publisher names."""

    id: int
    isbn: str
    title: str
    category_id: int
    category_name: str
    publisher_id: int
    publisher_name: str
    published_date: Optional[date]
    total_copies: int
    available_copies: int

    def __str__(self):
        return f"{self.title} ({self.isbn})"

    @classmethod
    def from_model(cls, book):
        return cls(
            id=book.id,
            isbn=book.isbn,
            title=book.title,
            category_id=book.category_id,
            category_name=book.category.name,
            publisher_id=book.publisher_id,
            publisher_name=book.publisher.name,
            published_date=book.published_date,
            total_copies=book.total_copies,
            available_copies=book.available_copies,
        )


@dataclass(frozen=True)
class Reader(_Record):
    id: int
    name: str
    card_number: str
    card_expiry: date
    outstanding_fine: float = 0.0

    @classmethod
    def from_model(cls, reader):
        return cls(
            id=reader.id,
            name=reader.name,
            card_number=reader.card_number,
            card_expiry=reader.card_expiry,
            outstanding_fine=reader.outstanding_fine,
        )


@dataclass(frozen=True)
class Loan(_Record):
    """One book lent to one reader; open while ``returned_date`` is None."""

    id: int
    book_id: int
    reader_id: int
    borrowed_date: date
    due_date: date
    returned_date: Optional[date]
    renewals: int
    fine_paid: float

    @property
    def is_open(self):
        return self.returned_date is None

    @classmethod
    def from_model(cls, loan):
        return cls(
            id=loan.id,
            book_id=loan.book_id,
            reader_id=loan.reader_id,
            borrowed_date=loan.borrowed_date,
            due_date=loan.due_date,
            returned_date=loan.returned_date,
            renewals=loan.renewals,
            fine_paid=loan.fine_paid,
        )


@dataclass(frozen=True)
class LoanDetail(_Record):
    id: int
    book_id: int
    book_title: str
    reader_id: int
    reader_name: str
    borrowed_date: date
    due_date: date
    returned_date: Optional[date]
    renewals: int
    fine_paid: float

    @classmethod
    def from_model(cls, loan):
        return cls(
            id=loan.id,
            book_id=loan.book_id,
            book_title=loan.book.title,
            reader_id=loan.reader_id,
            reader_name=loan.reader.name,
            borrowed_date=loan.borrowed_date,
            due_date=loan.due_date,
            returned_date=loan.returned_date,
            renewals=loan.renewals,
            fine_paid=loan.fine_paid,
        )


@dataclass(frozen=True)
class Payment(_Record):
    id: int
    loan_id: int
    reader_id: int
    amount: float
    paid_date: date

    @classmethod
    def from_model(cls, payment):
        return cls(
            id=payment.id,
            loan_id=payment.loan_id,
            reader_id=payment.reader_id,
            amount=payment.amount,
            paid_date=payment.paid_date,
        )
