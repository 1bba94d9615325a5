"""
The data gateway: the only way the rest of the app reads, writes or
authenticates. ``Gateway`` is the contract, ``LocalGateway`` keeps everything
in a SQLite file.
"""

from __future__ import annotations

import asyncio
import secrets
import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from db import crud
from db.models import Session
from utils.logger import get_logger

_logger = get_logger(__name__)

Collection = Literal["products", "orders", "contact_submissions"]
SessionEvent = Literal["signed_in", "signed_out", "expired"]
SessionCallback = Callable[[SessionEvent, Optional[Session]], None]

MIN_PASSWORD_LENGTH = 6


class GatewayError(Exception):
    """Backend failure on a read or a write."""


class AuthError(Exception):
    """Bad credentials, sign-up conflicts and the like. Message is user-facing."""


@dataclass(frozen=True)
class Filter:
    column: str
    op: Literal["eq", "neq"]
    value: Any


@dataclass(frozen=True)
class OrderBy:
    column: str
    descending: bool = False


class Subscription:
    """Handle returned by ``on_session_change``. Unsubscribing twice is fine."""

    def __init__(self, listeners: List[SessionCallback], callback: SessionCallback):
        self._listeners = listeners
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


class Gateway(ABC):
    """CRUD over rows plus session based authentication."""

    def __init__(self) -> None:
        self._listeners: List[SessionCallback] = []

    @abstractmethod
    async def select(
        self,
        collection: Collection,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]: ...

    @abstractmethod
    async def insert(self, collection: Collection, row: Dict[str, Any]) -> Dict[str, Any]: ...

    @abstractmethod
    async def update(self, collection: Collection, row_id: str, patch: Dict[str, Any]) -> None: ...

    @abstractmethod
    async def delete(self, collection: Collection, row_id: str) -> None: ...

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> Session: ...

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> None: ...

    @abstractmethod
    async def sign_out(self) -> None: ...

    @abstractmethod
    async def get_session(self) -> Optional[Session]: ...

    def on_session_change(self, callback: SessionCallback) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def _emit(self, event: SessionEvent, session: Optional[Session]) -> None:
        for cb in list(self._listeners):
            cb(event, session)


class LocalGateway(Gateway):
    """
    Gateway over a local SQLite database (see db.database).

    Sessions live in memory for this process only and expire after
    ``session_ttl`` seconds. Expiry is reported to session listeners when the
    timer runs out, without anyone having to ask for the session.
    """

    def __init__(self, db_path: Optional[str] = None, session_ttl: float = 3600):
        super().__init__()
        self.db_path = db_path
        self.session_ttl = session_ttl
        self._session: Optional[Session] = None
        self._expiry: Optional[asyncio.TimerHandle] = None

    def _cancel_expiry(self) -> None:
        if self._expiry is not None:
            self._expiry.cancel()
            self._expiry = None

    def _expire(self) -> None:
        self._expiry = None
        if self._session is None:
            return
        _logger.info(f"Session for {self._session.email} expired.")
        self._session = None
        self._emit("expired", None)

    async def select(self, collection, filters=None, order_by=None, limit=None):
        try:
            return await crud.select_rows(
                self.db_path,
                collection,
                [(f.column, f.op, f.value) for f in filters or ()],
                (order_by.column, order_by.descending) if order_by else None,
                limit,
            )
        except (ValueError, sqlite3.Error, OSError) as e:
            raise GatewayError(f"Could not read {collection}: {e}") from e

    async def insert(self, collection, row):
        try:
            stored = await crud.insert_row(self.db_path, collection, row)
        except (ValueError, TypeError, sqlite3.Error, OSError) as e:
            raise GatewayError(f"Could not insert into {collection}: {e}") from e
        _logger.debug(f"Inserted {collection} row {stored['id']}")
        return stored

    async def update(self, collection, row_id, patch):
        try:
            updated = await crud.update_row(self.db_path, collection, row_id, patch)
        except (ValueError, TypeError, sqlite3.Error, OSError) as e:
            raise GatewayError(f"Could not update {collection} {row_id}: {e}") from e
        if not updated:
            raise GatewayError(f"No {collection} row with id {row_id}")

    async def delete(self, collection, row_id):
        try:
            deleted = await crud.delete_row(self.db_path, collection, row_id)
        except (ValueError, sqlite3.Error, OSError) as e:
            raise GatewayError(f"Could not delete {collection} {row_id}: {e}") from e
        if not deleted:
            raise GatewayError(f"No {collection} row with id {row_id}")

    async def sign_in_with_password(self, email, password):
        email = (email or "").strip()
        if not email or not password:
            raise AuthError("Email and password are required.")
        try:
            uid = await crud.login(self.db_path, email, password)
        except sqlite3.Error as e:
            raise AuthError("Sign in is unavailable right now.") from e
        if uid is None:
            raise AuthError("Invalid login credentials.")

        self._session = Session(
            user_id=uid,
            email=email.lower(),
            access_token=secrets.token_urlsafe(32),
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=self.session_ttl),
        )
        self._cancel_expiry()
        self._expiry = asyncio.get_running_loop().call_later(
            self.session_ttl, self._expire
        )
        _logger.info(f"Staff member {self._session.email} signed in.")
        self._emit("signed_in", self._session)
        return self._session

    async def sign_up(self, email, password):
        email = (email or "").strip()
        if not email or "@" not in email:
            raise AuthError("A valid email address is required.")
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise AuthError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters."
            )
        try:
            if not await crud.email_available(self.db_path, email):
                raise AuthError("User already registered.")
            await crud.register_user(self.db_path, email, password)
        except sqlite3.IntegrityError as e:
            raise AuthError("User already registered.") from e
        except sqlite3.Error as e:
            raise AuthError("Sign up is unavailable right now.") from e
        _logger.info(f"Staff account created for {email.lower()}.")

    async def sign_out(self):
        if self._session is None:
            return
        _logger.info(f"Staff member {self._session.email} signed out.")
        self._cancel_expiry()
        self._session = None
        self._emit("signed_out", None)

    async def get_session(self):
        if self._session is not None and self._session.is_expired():
            self._cancel_expiry()
            self._expire()
        return self._session
