from datetime import date

from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    Float,
    ForeignKey,
)

Base = declarative_base()


class Category(Base):
    __tablename__ = "category"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)


class Publisher(Base):
    __tablename__ = "publisher"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)


class Book(Base):
    __tablename__ = "book"

    id = Column(Integer, primary_key=True, autoincrement=True)
    isbn = Column(String(20), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    category_id = Column(Integer, ForeignKey("category.id"), nullable=False)
    publisher_id = Column(Integer, ForeignKey("publisher.id"), nullable=False)
    published_date = Column(Date)
    total_copies = Column(Integer, nullable=False, default=1)
    available_copies = Column(Integer, nullable=False, default=1)

    category = relationship("Category")
    publisher = relationship("Publisher")


class Reader(Base):
    __tablename__ = "reader"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    card_number = Column(String(50), unique=True, nullable=False)
    card_expiry = Column(Date, nullable=False)
    outstanding_fine = Column(Float, nullable=False, default=0.0)


class Loan(Base):
    __tablename__ = "loan"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(Integer, ForeignKey("book.id"), nullable=False)
    reader_id = Column(Integer, ForeignKey("reader.id"), nullable=False)
    borrowed_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=False)
    # NULL while the loan is open
    returned_date = Column(Date)
    renewals = Column(Integer, nullable=False, default=0)
    fine_paid = Column(Float, nullable=False, default=0.0)

    book = relationship("Book")
    reader = relationship("Reader")


class Payment(Base):
    """
    Fine collected when an overdue loan is closed.
    """
    __tablename__ = "payment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_id = Column(Integer, ForeignKey("loan.id"), nullable=False)
    reader_id = Column(Integer, ForeignKey("reader.id"), nullable=False)
    amount = Column(Float, nullable=False)
    paid_date = Column(Date, nullable=False, default=date.today)
