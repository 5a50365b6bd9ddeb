from datetime import date

from .errors import ValidationError
from .records import Book, Reader

# Largest value a signed 64-bit INTEGER column can hold
MAX_INT = 2 ** 63 - 1


def is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def require_text(data, key, label):
    value = data.get(key)
    if is_blank(value):
        raise ValidationError(f"{label} is required")
    return str(value).strip()


def parse_int(value, label):
    """
    Whole number from a form field. Anything the database can't store
    counts as unparseable.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{label} is not a valid number")
    if isinstance(value, int):
        parsed = value
    else:
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            raise ValidationError(f"{label} is not a valid number") from None
    if not -MAX_INT - 1 <= parsed <= MAX_INT:
        raise ValidationError(f"{label} is not a valid number")
    return parsed


def parse_id(value, label):
    if is_blank(value):
        raise ValidationError(f"{label} is required")
    parsed = parse_int(value, label)
    if parsed <= 0:
        raise ValidationError(f"{label} must be positive")
    return parsed


def parse_date(value, label, required=True):
    """ISO YYYY-MM-DD; blank gives None when the field is optional."""
    if is_blank(value):
        if required:
            raise ValidationError(f"{label} is required")
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"{label} must be a date in YYYY-MM-DD format") from None


def parse_name(data):
    return require_text(data, "name", "Name")


def parse_book_form(data):
    isbn = require_text(data, "isbn", "ISBN")
    title = require_text(data, "title", "Title")
    if is_blank(data.get("category_id")) or is_blank(data.get("publisher_id")):
        raise ValidationError("Category and publisher must be selected")
    category_id = parse_id(data["category_id"], "Category")
    publisher_id = parse_id(data["publisher_id"], "Publisher")
    published_date = parse_date(data.get("published_date"), "Published date", required=False)

    if is_blank(data.get("total_copies")):
        raise ValidationError("Total copies is required")
    total = parse_int(data["total_copies"], "Total copies")
    # A blank available count means every copy is on the shelf
    if is_blank(data.get("available_copies")):
        available = total
    else:
        available = parse_int(data["available_copies"], "Available copies")

    if total < 0 or available < 0:
        raise ValidationError("Copy counts cannot be negative")
    if available > total:
        raise ValidationError("Available copies cannot exceed total copies")

    return Book(
        id=0,
        isbn=isbn,
        title=title,
        category_id=category_id,
        publisher_id=publisher_id,
        published_date=published_date,
        total_copies=total,
        available_copies=available,
    )


def parse_reader_form(data):
    if is_blank(data.get("name")) or is_blank(data.get("card_number")):
        raise ValidationError("Name and card number are required")
    return Reader(
        id=0,
        name=str(data["name"]).strip(),
        card_number=str(data["card_number"]).strip(),
        card_expiry=parse_date(data.get("card_expiry"), "Card expiry"),
    )
