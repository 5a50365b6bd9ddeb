import os
import logging
from datetime import timedelta
from functools import wraps

from flask import Blueprint, Flask, abort, current_app, jsonify, request
from flask_cors import CORS
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.routing import IntegerConverter

from .config import Config
from .errors import LoanStateError, NotFoundError, ValidationError
from .repository import LibraryRepository, make_session_factory
from .service import LibraryService
from . import validation

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__, url_prefix="/api")


class IdConverter(IntegerConverter):
    """Row ids in URLs: positive and within the INTEGER column range."""

    def __init__(self, url_map):
        super().__init__(url_map, min=1, max=validation.MAX_INT)


def create_app(config_object=Config, service=None):
    """
    Build the Flask app. ``service`` lets callers supply a ready-made
    LibraryService; otherwise one is wired to the configured database.
    """
    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_object)
    CORS(app)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))

    if service is None:
        session_factory = make_session_factory(
            app.config["SQLALCHEMY_DATABASE_URI"],
            echo=app.config.get("SQLALCHEMY_ECHO", False),
            pool_size=app.config.get("DB_POOL_SIZE", 10),
        )
        service = LibraryService(
            LibraryRepository(session_factory),
            app.config["DAILY_FINE_RATE"],
        )
    app.extensions["library_service"] = service

    # must be in place before the blueprint rules are bound
    app.url_map.converters["id"] = IdConverter
    app.register_blueprint(api)
    register_error_handlers(app)
    return app


def get_service():
    return current_app.extensions["library_service"]


# ----------------- helpers: API key, form data -----------------

def require_api_key(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        expected = current_app.config.get("SERVICE_API_KEY")
        sent = request.headers.get("X-API-Key")
        if expected and sent != expected:
            logger.warning("Invalid API key on %s", request.path)
            abort(401, description="Invalid or missing service API key")
        return func(*args, **kwargs)

    return wrapper


def form_data():
    """Accept either a JSON body or a posted HTML form."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form


# ----------------- error mapping -----------------

def _error(message, status):
    return jsonify({"error": message}), status


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation(e):
        logger.warning("Rejected input on %s: %s", request.path, e)
        return _error(str(e), 400)

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return _error(str(e), 404)

    @app.errorhandler(LoanStateError)
    def handle_loan_state(e):
        return _error(str(e), 409)

    @app.errorhandler(IntegrityError)
    def handle_integrity(e):
        logger.error("Constraint violation on %s: %s", request.path, e.orig)
        return _error(str(e.orig), 409)

    @app.errorhandler(SQLAlchemyError)
    def handle_datastore(e):
        logger.error("Datastore failure on %s: %s", request.path, e)
        return _error(str(e), 500)

    @app.errorhandler(HTTPException)
    def handle_http(e):
        return _error(e.description, e.code)


# ----------------- health -----------------

@api.get("/health")
def health():
    return jsonify({"status": "ok", "service": "library_service"})


# ----------------- categories / publishers -----------------

@api.get("/categories")
def list_categories():
    return jsonify([c.to_dict() for c in get_service().list_categories()])


@api.post("/categories")
@require_api_key
def save_category():
    name = validation.parse_name(form_data())
    return jsonify({"id": get_service().save_category(name)}), 201


@api.get("/publishers")
def list_publishers():
    return jsonify([p.to_dict() for p in get_service().list_publishers()])


@api.post("/publishers")
@require_api_key
def save_publisher():
    name = validation.parse_name(form_data())
    return jsonify({"id": get_service().save_publisher(name)}), 201


# ----------------- books -----------------

@api.get("/books")
def list_books():
    """
    All books with category/publisher names, newest first.
    ``?available=true`` keeps only books with a copy on the shelf.
    """
    service = get_service()
    if request.args.get("available", "false").lower() == "true":
        books = service.list_available_books()
    else:
        books = service.list_books()
    return jsonify([b.to_dict() for b in books])


@api.post("/books")
@require_api_key
def save_book():
    book = validation.parse_book_form(form_data())
    return jsonify({"id": get_service().add_book(book), "isbn": book.isbn}), 201


# ----------------- readers -----------------

@api.get("/readers")
def list_readers():
    return jsonify([r.to_dict() for r in get_service().list_readers()])


@api.post("/readers")
@require_api_key
def save_reader():
    reader = validation.parse_reader_form(form_data())
    return jsonify({"id": get_service().add_reader(reader)}), 201


@api.get("/readers/<id:reader_id>/loans")
def reader_loans(reader_id):
    return jsonify([l.to_dict() for l in get_service().find_loans_by_reader(reader_id)])


@api.get("/readers/<id:reader_id>/payments")
def reader_payments(reader_id):
    return jsonify([p.to_dict() for p in get_service().find_payments_by_reader(reader_id)])


# ----------------- loans -----------------

@api.get("/loans")
def list_loans():
    return jsonify([l.to_dict() for l in get_service().list_loan_details()])


@api.get("/loans/<id:loan_id>")
def get_loan(loan_id):
    return jsonify(get_service().get_loan(loan_id).to_dict())


@api.post("/loans")
@require_api_key
def borrow_book():
    data = form_data()
    if validation.is_blank(data.get("reader_id")) or validation.is_blank(data.get("book_id")):
        raise ValidationError("Select a reader and an available book")
    reader_id = validation.parse_id(data["reader_id"], "Reader")
    book_id = validation.parse_id(data["book_id"], "Book")

    service = get_service()
    due_date = validation.parse_date(data.get("due_date"), "Due date", required=False)
    if due_date is None:
        due_date = service.today() + timedelta(days=current_app.config["DEFAULT_LOAN_DAYS"])

    loan_id = service.borrow(reader_id, book_id, due_date)
    return jsonify({"loan_id": loan_id, "due_date": due_date.isoformat()}), 201


@api.post("/loans/<id:loan_id>/renew")
@require_api_key
def renew_loan(loan_id):
    new_due_date = validation.parse_date(form_data().get("due_date"), "New due date")
    loan = get_service().renew(loan_id, new_due_date)
    return jsonify(loan.to_dict())


@api.post("/loans/<id:loan_id>/return")
@require_api_key
def return_book(loan_id):
    """
    Close a loan. ``due_date`` defaults to the loan's stored due date;
    the response carries the fine charged.
    """
    data = form_data()
    returned_date = validation.parse_date(data.get("returned_date"), "Return date")
    due_date = validation.parse_date(data.get("due_date"), "Due date", required=False)

    service = get_service()
    if due_date is None:
        due_date = service.get_loan(loan_id).due_date

    fine = service.return_loan(loan_id, due_date, returned_date)
    return jsonify({"loan_id": loan_id, "fine": fine})


if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    create_app().run(host="0.0.0.0", port=port, debug=True)
