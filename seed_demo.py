# seed_demo.py
from datetime import date, timedelta

import requests

BASE_URL = "http://localhost:5000"
SERVICE_API_KEY = "dev-service-key"

HEADERS = {"X-API-Key": SERVICE_API_KEY}

CATEGORIES = ["Programming", "Computer Science", "Operations"]
PUBLISHERS = ["Prentice Hall", "Addison-Wesley", "MIT Press", "O'Reilly Media"]

BOOKS = [
    {
        "isbn": "978-0132350884",
        "title": "Clean Code",
        "category": "Programming",
        "publisher": "Prentice Hall",
        "published_date": "2008-08-01",
    },
    {
        "isbn": "978-0201616224",
        "title": "The Pragmatic Programmer",
        "category": "Programming",
        "publisher": "Addison-Wesley",
        "published_date": "1999-10-20",
    },
    {
        "isbn": "978-0262033848",
        "title": "Introduction to Algorithms",
        "category": "Computer Science",
        "publisher": "MIT Press",
        "published_date": "2009-07-31",
    },
    {
        "isbn": "978-1491950357",
        "title": "Designing Data-Intensive Applications",
        "category": "Operations",
        "publisher": "O'Reilly Media",
        "published_date": "2017-03-16",
    },
]

READERS = [
    {"name": "Alice Example", "card_number": "CARD-001"},
    {"name": "Bob Example", "card_number": "CARD-002"},
]


def check_service(url):
    """Hit /api/health and return True/False."""
    health_url = f"{url.rstrip('/')}/api/health"
    try:
        r = requests.get(health_url, timeout=3)
        print(f"[CHECK] {health_url} -> {r.status_code}")
        return r.ok
    except requests.RequestException as e:
        print(f"[ERROR] service not reachable at {health_url}: {e}")
        return False


def post(path, payload):
    resp = requests.post(f"{BASE_URL}{path}", headers=HEADERS, json=payload, timeout=5)
    if not resp.ok:
        raise RuntimeError(f"POST {path} -> {resp.status_code}: {resp.text.strip()}")
    return resp.json()


def seed_lookups():
    print("\n== Seeding categories and publishers ==")
    category_ids = {name: post("/api/categories", {"name": name})["id"] for name in CATEGORIES}
    publisher_ids = {name: post("/api/publishers", {"name": name})["id"] for name in PUBLISHERS}
    print(f"  {len(category_ids)} categories, {len(publisher_ids)} publishers")
    return category_ids, publisher_ids


def seed_books(category_ids, publisher_ids):
    print("\n== Seeding books ==")
    book_ids = []
    for i, book in enumerate(BOOKS, start=1):
        payload = {
            "isbn": book["isbn"],
            "title": book["title"],
            "category_id": category_ids[book["category"]],
            "publisher_id": publisher_ids[book["publisher"]],
            "published_date": book["published_date"],
            # vary copies per title to make availability more interesting
            "total_copies": 2 + (i % 4),
        }
        book_ids.append(post("/api/books", payload)["id"])
        print(f"  [{i:02}] {book['title']}")
    return book_ids


def seed_readers():
    print("\n== Seeding readers ==")
    expiry = (date.today() + timedelta(days=365)).isoformat()
    reader_ids = []
    for reader in READERS:
        reader_ids.append(post("/api/readers", dict(reader, card_expiry=expiry))["id"])
        print(f"  {reader['card_number']}: {reader['name']}")
    return reader_ids


def run_loan_cycle(reader_id, book_id):
    """Borrow, renew once, then return five days late."""
    print("\n== Loan cycle ==")
    today = date.today()
    due = today + timedelta(days=30)
    loan_id = post("/api/loans", {
        "reader_id": reader_id,
        "book_id": book_id,
        "due_date": due.isoformat(),
    })["loan_id"]
    print(f"  borrowed as loan {loan_id}, due {due}")

    renewed_due = today + timedelta(days=60)
    loan = post(f"/api/loans/{loan_id}/renew", {"due_date": renewed_due.isoformat()})
    print(f"  renewed until {loan['due_date']} (renewals: {loan['renewals']})")

    returned = renewed_due + timedelta(days=5)
    result = post(f"/api/loans/{loan_id}/return", {"returned_date": returned.isoformat()})
    print(f"  returned on {returned}, fine charged: {result['fine']:.2f}")


def main():
    print("Checking library service...")
    if not check_service(BASE_URL):
        print("\nLibrary service is not reachable. Make sure it is running on 5000.")
        return

    category_ids, publisher_ids = seed_lookups()
    book_ids = seed_books(category_ids, publisher_ids)
    reader_ids = seed_readers()
    run_loan_cycle(reader_ids[0], book_ids[0])

    print("\nDone.")
    print("Try hitting:")
    print(f"  {BASE_URL}/api/loans")
    print(f"  {BASE_URL}/api/books?available=true")


if __name__ == "__main__":
    main()
