# src/db/crud.py
from __future__ import annotations

import hashlib
import json
import secrets
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from db.database import connect
from db.models import utc_now

# writable/filterable columns per collection; "id" is always addressable
COLUMNS: Dict[str, Tuple[str, ...]] = {
    "products": (
        "id",
        "name",
        "flavor",
        "description",
        "price",
        "image_url",
        "stock_status",
        "is_featured",
        "created_at",
        "updated_at",
    ),
    "orders": (
        "id",
        "customer_name",
        "customer_email",
        "customer_phone",
        "delivery_address",
        "order_items",
        "total_amount",
        "status",
        "notes",
        "created_at",
        "updated_at",
    ),
    "contact_submissions": (
        "id",
        "name",
        "email",
        "phone",
        "message",
        "is_read",
        "created_at",
    ),
}

_JSON_COLUMNS = {"order_items"}
_BOOL_COLUMNS = {"is_featured", "is_read"}
_HAS_UPDATED_AT = {"products", "orders"}

_OPS = {"eq": "=", "neq": "!="}

PBKDF2_ROUNDS = 120_000


def _check_collection(collection: str) -> Tuple[str, ...]:
    try:
        return COLUMNS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection '{collection}'") from None


def _check_column(collection: str, column: str) -> str:
    if column not in _check_collection(collection):
        raise ValueError(f"Unknown column '{column}' for '{collection}'")
    return column


def _encode(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS:
        return json.dumps(value)
    if column in _BOOL_COLUMNS:
        return 1 if value else 0
    if value is not None and not isinstance(value, (str, int, float, bytes)):
        # Decimal and friends
        return str(value)
    return value


def _decode(row) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in row.keys():
        val = row[key]
        if key in _JSON_COLUMNS and isinstance(val, str):
            val = json.loads(val)
        elif key in _BOOL_COLUMNS and val is not None:
            val = bool(val)
        out[key] = val
    return out


# ---------------------------
# Rows
# ---------------------------


async def select_rows(
    db_path: Optional[str],
    collection: str,
    filters: Sequence[Tuple[str, str, Any]] = (),
    order_by: Optional[Tuple[str, bool]] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Return rows of a collection.
    filters: (column, op, value) with op in "eq"/"neq", ANDed together.
    order_by: (column, descending).
    """
    _check_collection(collection)
    where: List[str] = []
    params: List[Any] = []
    for column, op, value in filters:
        _check_column(collection, column)
        if op not in _OPS:
            raise ValueError(f"Unsupported filter operator '{op}'")
        where.append(f"{column} {_OPS[op]} ?")
        params.append(_encode(column, value))

    sql = f"SELECT * FROM {collection}"
    if where:
        sql += " WHERE " + " AND ".join(where)
    if order_by:
        column, descending = order_by
        _check_column(collection, column)
        sql += f" ORDER BY {column} {'DESC' if descending else 'ASC'}"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(int(limit))

    async with connect(db_path) as conn:
        cur = await conn.execute(sql + ";", tuple(params))
        rows = await cur.fetchall()
        await cur.close()
    return [_decode(r) for r in rows]


async def insert_row(
    db_path: Optional[str], collection: str, row: Dict[str, Any]
) -> Dict[str, Any]:
    """Insert a row, assigning an opaque id and timestamps. Returns the stored row."""
    _check_collection(collection)
    now = utc_now()
    data = dict(row)
    data.setdefault("id", uuid.uuid4().hex)
    data.setdefault("created_at", now)
    if collection in _HAS_UPDATED_AT:
        data.setdefault("updated_at", now)
    for column in data:
        _check_column(collection, column)

    columns = list(data)
    placeholders = ", ".join("?" for _ in columns)
    async with connect(db_path) as conn:
        await conn.execute(
            f"INSERT INTO {collection}({', '.join(columns)}) VALUES ({placeholders});",
            tuple(_encode(c, data[c]) for c in columns),
        )
        await conn.commit()
        cur = await conn.execute(
            f"SELECT * FROM {collection} WHERE id = ?;", (data["id"],)
        )
        stored = await cur.fetchone()
        await cur.close()
    return _decode(stored)


async def update_row(
    db_path: Optional[str], collection: str, row_id: str, patch: Dict[str, Any]
) -> bool:
    """Apply a partial update. Return True if a row was updated."""
    if not patch:
        return False
    for column in patch:
        _check_column(collection, column)
    if "id" in patch:
        raise ValueError("The id of a row cannot be changed.")
    assignments = ", ".join(f"{c} = ?" for c in patch)
    async with connect(db_path) as conn:
        res = await conn.execute(
            f"UPDATE {collection} SET {assignments} WHERE id = ?;",
            tuple(_encode(c, v) for c, v in patch.items()) + (row_id,),
        )
        await conn.commit()
        return res.rowcount > 0


async def delete_row(db_path: Optional[str], collection: str, row_id: str) -> bool:
    """Delete a row by id. Return True if a row was removed."""
    _check_collection(collection)
    async with connect(db_path) as conn:
        res = await conn.execute(f"DELETE FROM {collection} WHERE id = ?;", (row_id,))
        await conn.commit()
        return res.rowcount > 0


# ---------------------------
# Auth & Registration
# ---------------------------


def hash_password(pwd: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        "sha256", pwd.encode("utf-8"), bytes.fromhex(salt), PBKDF2_ROUNDS
    ).hex()


async def email_available(db_path: Optional[str], email: str) -> bool:
    """True if no staff account is registered with the given email."""
    async with connect(db_path) as conn:
        cur = await conn.execute(
            "SELECT 1 FROM users WHERE email = ? LIMIT 1;", (email.lower(),)
        )
        row = await cur.fetchone()
        await cur.close()
        return row is None


async def register_user(db_path: Optional[str], email: str, pwd: str) -> str:
    """Create a staff account and return its id."""
    uid = uuid.uuid4().hex
    salt = secrets.token_hex(16)
    async with connect(db_path) as conn:
        await conn.execute(
            "INSERT INTO users(id, email, pwd_hash, salt, created_at) VALUES (?, ?, ?, ?, ?);",
            (uid, email.lower(), hash_password(pwd, salt), salt, utc_now()),
        )
        await conn.commit()
    return uid


async def login(db_path: Optional[str], email: str, pwd: str) -> Optional[str]:
    """Return the user id if email/pwd match; otherwise None."""
    async with connect(db_path) as conn:
        cur = await conn.execute(
            "SELECT id, pwd_hash, salt FROM users WHERE email = ?;",
            (email.lower(),),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    if not secrets.compare_digest(hash_password(pwd, row["salt"]), row["pwd_hash"]):
        return None
    return row["id"]
