"""VulnLab: deliberately vulnerable library API for LibProbe testing.

Implements only the routes the probe drives: auth, books, borrow/return and
search. Uses a real SQLite database; the search endpoint concatenates the
query into SQL and registration trusts the client supplied role.
"""

import datetime
import os
import sqlite3
from functools import wraps

import jwt
from flask import Flask, current_app, g, jsonify, request
from werkzeug.security import check_password_hash, generate_password_hash

DB_PATH = os.path.join(os.path.dirname(__file__), "librarylab.db")
JWT_SECRET = "vulnlab-library-signing-key-0123456789abcdef"
JWT_TTL = datetime.timedelta(hours=10)

SEED_USERS = [
    ("admin", "password123", "ROLE_ADMIN"),
    ("alice", "password123", "ROLE_USER"),
    ("bob", "password123", "ROLE_USER"),
    ("charlie", "password123", "ROLE_USER"),
]

SEED_BOOKS = [
    ("The Great Gatsby", "F. Scott Fitzgerald", "9780743273565"),
    ("To Kill a Mockingbird", "Harper Lee", "9780061120084"),
    ("1984", "George Orwell", "9780451524935"),
    ("Pride and Prejudice", "Jane Austen", "9780141439518"),
    ("The Hobbit", "J.R.R. Tolkien", "9780547928227"),
    ("Harry Potter and the Philosopher's Stone", "J.K. Rowling", "9780747532743"),
    ("The Catcher in the Rye", "J.D. Salinger", "9780316769488"),
    ("The Lord of the Rings", "J.R.R. Tolkien", "9780544003415"),
]

BOOK_COLUMNS = "id, title, author, isbn, available"

# SQLite INTEGER range
MIN_ID, MAX_ID = -2 ** 63, 2 ** 63 - 1


# ── Database helpers ────────────────────────────────────────────

def get_db():
    """Get a per-request SQLite connection."""
    if "db" not in g:
        g.db = sqlite3.connect(current_app.config["DB_PATH"])
        g.db.row_factory = sqlite3.Row
    return g.db


def close_db(exc):
    db = g.pop("db", None)
    if db:
        db.close()


def init_db(path: str):
    """Create tables and seed data."""
    conn = sqlite3.connect(path)
    cur = conn.cursor()
    cur.executescript("""
        DROP TABLE IF EXISTS borrow_records;
        DROP TABLE IF EXISTS books;
        DROP TABLE IF EXISTS users;
        CREATE TABLE users (
            id       INTEGER PRIMARY KEY,
            username TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            role     TEXT NOT NULL DEFAULT 'ROLE_USER'
        );
        CREATE TABLE books (
            id        INTEGER PRIMARY KEY,
            title     TEXT NOT NULL,
            author    TEXT NOT NULL,
            isbn      TEXT,
            available BOOLEAN NOT NULL DEFAULT 1
        );
        CREATE TABLE borrow_records (
            id          INTEGER PRIMARY KEY,
            user_id     INTEGER NOT NULL REFERENCES users(id),
            book_id     INTEGER NOT NULL REFERENCES books(id),
            borrow_date TEXT NOT NULL,
            return_date TEXT
        );
    """)
    cur.executemany("INSERT INTO users (username, password, role) VALUES (?,?,?)",
                    [(u, generate_password_hash(p), r) for u, p, r in SEED_USERS])
    cur.executemany("INSERT INTO books (title, author, isbn) VALUES (?,?,?)", SEED_BOOKS)
    conn.commit()
    conn.close()


def book_dict(row):
    d = dict(row)
    if "available" in d and isinstance(d["available"], int):
        d["available"] = bool(d["available"])
    return d


def error(message, status=400):
    return jsonify({"success": False, "error": message}), status


# ── Auth ────────────────────────────────────────────────────────

def issue_token(username, role):
    now = datetime.datetime.now(datetime.timezone.utc)
    claims = {"sub": username, "role": role, "iat": now, "exp": now + JWT_TTL}
    return jwt.encode(claims, JWT_SECRET, algorithm="HS256")


def requires(role=None):
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            header = request.headers.get("Authorization", "")
            if not header.startswith("Bearer "):
                return error("Authentication required", 401)
            try:
                claims = jwt.decode(header[7:], JWT_SECRET, algorithms=["HS256"])
            except jwt.InvalidTokenError:
                return error("Invalid token", 401)
            user = get_db().execute("SELECT id, username, role FROM users WHERE username = ?",
                                    (claims.get("sub"),)).fetchone()
            if user is None:
                return error("Invalid token", 401)
            if role and user["role"] != role:
                return error("Access denied", 403)
            g.user = user
            return fn(*args, **kwargs)
        return wrapper
    return deco


def parse_id(raw):
    """Book id as a signed 64-bit integer, None when it is not one."""
    try:
        value = int(raw)
    except ValueError:
        return None
    if not MIN_ID <= value <= MAX_ID:
        return None
    return value


def create_app(db_path: str = DB_PATH, reset: bool = False) -> Flask:
    app = Flask(__name__)
    app.config["DB_PATH"] = db_path
    if reset or not os.path.exists(db_path):
        init_db(db_path)
    app.teardown_appcontext(close_db)

    # ══════════════════════════════════════════════════════════════
    #  AUTH
    # ══════════════════════════════════════════════════════════════

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        data = request.get_json(silent=True) or {}
        username, password = data.get("username"), data.get("password")
        if not username or not password:
            return error("Username and password required")
        user = get_db().execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
        if user is None or not check_password_hash(user["password"], str(password)):
            return error("Invalid username or password", 401)
        return jsonify({"success": True, "message": "Login successful",
                        "token": issue_token(user["username"], user["role"]),
                        "username": user["username"]})

    @app.route("/api/auth/register", methods=["POST"])
    def register():
        data = request.get_json(silent=True) or {}
        username, password = data.get("username"), data.get("password")
        if not username or not password:
            return error("Username and password required")
        # VULNERABLE: mass assignment, the client picks its own role
        role = str(data.get("role") or "USER").upper()
        if not role.startswith("ROLE_"):
            role = "ROLE_" + role
        db = get_db()
        try:
            db.execute("INSERT INTO users (username, password, role) VALUES (?,?,?)",
                       (str(username), generate_password_hash(str(password)), role))
            db.commit()
        except sqlite3.IntegrityError:
            return error("Username already exists")
        return jsonify({"success": True, "message": "User registered successfully"})

    # ══════════════════════════════════════════════════════════════
    #  BOOKS
    # ══════════════════════════════════════════════════════════════

    @app.route("/api/books", methods=["GET"])
    @requires()
    def list_books():
        rows = get_db().execute(f"SELECT {BOOK_COLUMNS} FROM books ORDER BY id").fetchall()
        return jsonify({"success": True, "message": f"Found {len(rows)} books",
                        "books": [book_dict(r) for r in rows]})

    @app.route("/api/books", methods=["POST"])
    @requires("ROLE_ADMIN")
    def add_book():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return error("Request body must be a JSON object")
        if not data.get("title") or not data.get("author"):
            return error("Title and author are required")
        db = get_db()
        cur = db.execute("INSERT INTO books (title, author, isbn) VALUES (?,?,?)",
                         (str(data["title"]), str(data["author"]), data.get("isbn")))
        db.commit()
        row = db.execute(f"SELECT {BOOK_COLUMNS} FROM books WHERE id = ?",
                         (cur.lastrowid,)).fetchone()
        return jsonify({"success": True, "message": "Book added successfully",
                        "book": book_dict(row)}), 201

    @app.route("/api/books/<raw_id>", methods=["PUT"])
    @requires("ROLE_ADMIN")
    def update_book(raw_id):
        book_id = parse_id(raw_id)
        if book_id is None:
            return error("Invalid book id")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return error("Request body must be a JSON object")
        db = get_db()
        if db.execute("SELECT id FROM books WHERE id = ?", (book_id,)).fetchone() is None:
            return error("Book not found", 404)
        fields = {k: data[k] for k in ("title", "author", "isbn", "available") if k in data}
        for key, value in fields.items():
            db.execute(f"UPDATE books SET {key} = ? WHERE id = ?", (value, book_id))
        db.commit()
        row = db.execute(f"SELECT {BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)).fetchone()
        return jsonify({"success": True, "message": "Book updated", "book": book_dict(row)})

    @app.route("/api/books/<raw_id>", methods=["DELETE"])
    @requires("ROLE_ADMIN")
    def delete_book(raw_id):
        book_id = parse_id(raw_id)
        if book_id is None:
            return error("Invalid book id")
        db = get_db()
        if db.execute("SELECT id FROM books WHERE id = ?", (book_id,)).fetchone() is None:
            return error("Book not found", 404)
        active = db.execute("SELECT id FROM borrow_records WHERE book_id = ? "
                            "AND return_date IS NULL", (book_id,)).fetchone()
        if active is not None:
            return error("Book is currently borrowed")
        db.execute("DELETE FROM borrow_records WHERE book_id = ?", (book_id,))
        db.execute("DELETE FROM books WHERE id = ?", (book_id,))
        db.commit()
        return jsonify({"success": True, "message": "Book deleted", "bookId": book_id})

    # ══════════════════════════════════════════════════════════════
    #  BORROW / RETURN
    # ══════════════════════════════════════════════════════════════

    @app.route("/api/borrow/<raw_id>", methods=["POST"])
    @requires()
    def borrow(raw_id):
        book_id = parse_id(raw_id)
        if book_id is None:
            # VULNERABLE: conversion error detail returned to the client
            return error(f"Borrow failed: NumberFormatException: For input string: \"{raw_id}\"")
        db = get_db()
        book = db.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        if book is None:
            return error("Book not found", 404)
        if not book["available"]:
            return error("Book is not available")
        db.execute("INSERT INTO borrow_records (user_id, book_id, borrow_date) VALUES (?,?,?)",
                   (g.user["id"], book_id, datetime.date.today().isoformat()))
        db.execute("UPDATE books SET available = 0 WHERE id = ?", (book_id,))
        db.commit()
        return jsonify({"success": True, "message": "Book borrowed successfully",
                        "book": book["title"], "dueDate": "14 days from now"})

    @app.route("/api/return/<raw_id>", methods=["POST"])
    @requires()
    def return_book(raw_id):
        book_id = parse_id(raw_id)
        if book_id is None:
            return error("Invalid book id")
        db = get_db()
        record = db.execute("SELECT id FROM borrow_records WHERE book_id = ? AND user_id = ? "
                            "AND return_date IS NULL", (book_id, g.user["id"])).fetchone()
        if record is None:
            return error("No active borrow record for this book")
        db.execute("UPDATE borrow_records SET return_date = ? WHERE id = ?",
                   (datetime.date.today().isoformat(), record["id"]))
        db.execute("UPDATE books SET available = 1 WHERE id = ?", (book_id,))
        db.commit()
        return jsonify({"success": True, "message": "Book returned successfully"})

    # ══════════════════════════════════════════════════════════════
    #  SEARCH: SQL Injection (real SQLite)
    # ══════════════════════════════════════════════════════════════

    @app.route("/api/search", methods=["GET"])
    @requires()
    def search():
        q = request.args.get("q", "")
        # VULNERABLE: raw string concatenation in SQL query
        query = (f"SELECT {BOOK_COLUMNS} FROM books "
                 f"WHERE title LIKE '%{q}%' OR author LIKE '%{q}%'")
        try:
            rows = get_db().execute(query).fetchall()
        except (sqlite3.Error, sqlite3.Warning) as e:
            # VULNERABLE: leaking SQL error messages
            return error(f"Search failed: {e.__class__.__name__}: {e}")
        return jsonify({"success": True, "message": f"Found {len(rows)} books",
                        "books": [book_dict(r) for r in rows]})

    return app


# ══════════════════════════════════════════════════════════════════
#  Main
# ══════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    lab = create_app(DB_PATH, reset=True)
    print("\n  🔓 VulnLab library API on http://0.0.0.0:8080\n")
    lab.run(host="0.0.0.0", port=8080, debug=False)
