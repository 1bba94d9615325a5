from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Callable

from db.gateway import Gateway, GatewayError
from db.models import new_contact_row
from shop.errors import ValidationError
from shop.ordering import SuccessFlag, check_email, check_required
from utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass
class ContactForm:
    name: str = ""
    email: str = ""
    phone: str = ""  # optional
    message: str = ""

    REQUIRED = ["name", "email", "message"]
    LABELS = {"name": "Your Name", "email": "Email Address", "message": "Your Message"}

    def validate(self) -> None:
        check_required(self, self.REQUIRED, self.LABELS)
        check_email(self.email, "email")

    def clear(self) -> None:
        for f in fields(self):
            setattr(self, f.name, "")


class ContactWorkflow:
    """Sends one inquiry per submit; the form survives a failed send."""

    def __init__(self, gateway: Gateway, success_seconds: float = 5.0):
        self.gateway = gateway
        self.submitting = False
        self._success = SuccessFlag(success_seconds)

    @property
    def succeeded(self) -> bool:
        return self._success.value

    def on_success_change(self, listener: Callable[[bool], None]) -> None:
        self._success.add_listener(listener)

    async def submit(self, form: ContactForm) -> str:
        if self.submitting:
            raise ValidationError("Your message is already being sent.")
        form.validate()

        row = new_contact_row(
            name=form.name.strip(),
            email=form.email.strip(),
            phone=form.phone.strip(),
            message=form.message.strip(),
        )
        self.submitting = True
        try:
            stored = await self.gateway.insert("contact_submissions", row)
        except GatewayError as e:
            _logger.error(f"Sending contact message failed: {e}")
            raise
        finally:
            self.submitting = False

        _logger.info(f"Contact message {stored['id']} received from {row['email']}")
        form.clear()
        self._success.raise_()
        return str(stored["id"])
