# db.py: account store for the portal
# - One `users` table: email, phone number, role claim, salted password hash
# - Phone numbers are NOT unique; lookups return rows in insertion order
# - Connections are opened per call and closed afterwards

import os
import hmac
import sqlite3
import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger(__name__)

ROLES = ("admin", "teacher", "parent", "student")

# public field name -> column
QUERYABLE_FIELDS = {
    "phoneNumber": "phone_number",
    "email": "email",
    "role": "role",
}

PBKDF2_ITERATIONS = 260_000


@dataclass(frozen=True)
class AccountRecord:
    id: int
    email: Optional[str]
    phone_number: Optional[str]
    role: Optional[str]
    display_name: Optional[str]
    password_hash: Optional[str]


# -------------------------
# Password hashing
# -------------------------
def hash_password(password: str, salt: Optional[str] = None, iterations: Optional[int] = None) -> str:
    salt = salt or secrets.token_hex(16)
    iterations = iterations or PBKDF2_ITERATIONS
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations).hex()
    return f"pbkdf2_sha256${iterations}${salt}${digest}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    if not stored:
        return False
    try:
        algo, iterations, salt, digest = stored.split("$")
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    try:
        rounds = int(iterations)
    except ValueError:
        return False
    if rounds <= 0:
        return False
    candidate = hash_password(password, salt=salt, iterations=rounds)
    return hmac.compare_digest(candidate.split("$")[-1], digest)


# -------------------------
# Connection
# -------------------------
def get_connection(db_path: str):
    """
    Create a SQLite connection with foreign keys enforced.
    """
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


# -------------------------
# Schema
# -------------------------
def init_db(db_path: str) -> None:
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    conn = get_connection(db_path)
    cur = conn.cursor()
    cur.execute("""
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE COLLATE NOCASE,           -- stored lowercased, NULL for phone-only accounts
        phone_number TEXT,                         -- not unique: first match wins on lookup
        password_hash TEXT,
        role TEXT,                                 -- admin / teacher / parent / student, NULL = no access yet
        display_name TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
    );
    """)
    cur.execute("CREATE INDEX IF NOT EXISTS idx_users_phone ON users(phone_number);")
    conn.commit()
    conn.close()


_SELECT = "SELECT id, email, phone_number, role, display_name, password_hash FROM users"


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lowercased, stripped address; blank becomes None."""
    email = (email or "").strip().lower()
    return email or None


def _to_record(row) -> AccountRecord:
    return AccountRecord(
        id=row[0],
        email=row[1],
        phone_number=row[2],
        role=row[3],
        display_name=row[4],
        password_hash=row[5],
    )


class AccountStore:
    """Lookup and write access to the `users` table."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        init_db(db_path)

    def query_by_field(self, field: str, value) -> List[AccountRecord]:
        """Records whose `field` equals `value` exactly, in insertion order."""
        column = QUERYABLE_FIELDS.get(field)
        if column is None:
            raise ValueError(f"cannot query accounts by {field!r}")
        if field == "email":
            value = normalize_email(value)
        conn = get_connection(self.db_path)
        try:
            cur = conn.cursor()
            cur.execute(f"{_SELECT} WHERE {column}=? ORDER BY id ASC", (value,))
            rows = cur.fetchall()
        finally:
            conn.close()
        return [_to_record(r) for r in rows]

    def find_by_phone(self, phone_number: str) -> List[AccountRecord]:
        return self.query_by_field("phoneNumber", phone_number)

    def get_by_email(self, email: str) -> Optional[AccountRecord]:
        matches = self.query_by_field("email", email)
        return matches[0] if matches else None

    def create_account(self, email, password, phone_number=None, role=None, display_name=None) -> AccountRecord:
        if role is not None and role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        email = normalize_email(email)
        password_hash = hash_password(password) if password else None
        conn = get_connection(self.db_path)
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO users (email, phone_number, password_hash, role, display_name) VALUES (?, ?, ?, ?, ?)",
                (email, phone_number, password_hash, role, display_name),
            )
            conn.commit()
            new_id = cur.lastrowid
        finally:
            conn.close()
        logger.info("Created account id=%s role=%s", new_id, role)
        return AccountRecord(new_id, email, phone_number, role, display_name, password_hash)

    def set_role(self, email: str, role: Optional[str]) -> bool:
        """Grant (or revoke with None) the role claim of an account."""
        if role is not None and role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        conn = get_connection(self.db_path)
        try:
            cur = conn.cursor()
            cur.execute("UPDATE users SET role=? WHERE email=?", (role, normalize_email(email)))
            conn.commit()
            changed = cur.rowcount > 0
        finally:
            conn.close()
        return changed


# -------------------------
# Seed
# -------------------------
DEMO_ACCOUNTS = [
    # email, phone, password, role, display name
    ("admin@school.local", "9000000001", "admin123", "admin", "Admin"),
    ("teacher@school.local", "9000000002", "teacher123", "teacher", "Demo Teacher"),
    ("parent@school.local", "9000000003", "parent123", "parent", "Demo Parent"),
    ("student@school.local", "9000000004", "student123", "student", "Demo Student"),
]


def seed_demo_accounts(store: AccountStore) -> int:
    """Insert the demo accounts that are not present yet. Returns how many were added."""
    added = 0
    for email, phone, password, role, name in DEMO_ACCOUNTS:
        if store.get_by_email(email) is not None:
            continue
        store.create_account(email, password, phone_number=phone, role=role, display_name=name)
        added += 1
    return added
