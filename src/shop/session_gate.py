from __future__ import annotations

from typing import Callable, List, Literal, Optional

from db.gateway import AuthError, Gateway, SessionEvent, Subscription
from db.models import Session
from utils.logger import get_logger

_logger = get_logger(__name__)

GateState = Literal["resolving", "unauthenticated", "authenticated"]
GateListener = Callable[[GateState, Optional[Session]], None]


class SessionGate:
    """
    Decides whether the admin area shows the login form or the dashboard.

    State starts as "resolving" until the current session is known, then
    follows every session change the gateway reports for as long as the gate is
    open. Use it as an async context manager so the subscription is always
    released:

        async with SessionGate(gateway) as gate:
            ...
    """

    def __init__(self, gateway: Gateway):
        self.gateway = gateway
        self.state: GateState = "resolving"
        self.session: Optional[Session] = None
        self._subscription: Optional[Subscription] = None
        self._listeners: List[GateListener] = []

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def add_listener(self, listener: GateListener) -> None:
        self._listeners.append(listener)

    def _set_session(self, session: Optional[Session]) -> None:
        self.session = session
        new_state: GateState = "authenticated" if session else "unauthenticated"
        if new_state != self.state:
            _logger.debug(f"Admin gate: {self.state} -> {new_state}")
        self.state = new_state
        for listener in list(self._listeners):
            listener(self.state, self.session)

    def _on_session_change(self, event: SessionEvent, session: Optional[Session]) -> None:
        _logger.debug(f"Session event '{event}'")
        self._set_session(session)

    async def open(self) -> GateState:
        if self.is_open:
            return self.state
        self.state = "resolving"
        self._subscription = self.gateway.on_session_change(self._on_session_change)
        try:
            session = await self.gateway.get_session()
        except Exception:
            self.close()
            raise
        # a sign-in may have been reported while we were waiting
        if self.state == "resolving":
            self._set_session(session)
        return self.state

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def __aenter__(self) -> SessionGate:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    # login form helpers: errors come back as text for the form to show

    async def sign_in(self, email: str, password: str) -> Optional[str]:
        try:
            await self.gateway.sign_in_with_password(email, password)
        except AuthError as e:
            _logger.info(f"Sign in rejected for {email}: {e}")
            return str(e)
        return None

    async def sign_up(self, email: str, password: str) -> Optional[str]:
        try:
            await self.gateway.sign_up(email, password)
        except AuthError as e:
            return str(e)
        return None

    async def sign_out(self) -> None:
        await self.gateway.sign_out()
