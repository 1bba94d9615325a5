from __future__ import annotations

from dataclasses import dataclass, field

import db.database as database
from db.gateway import Gateway, LocalGateway
from shop.cart import Cart
from shop.contact import ContactForm, ContactWorkflow
from shop.ordering import OrderForm, OrderWorkflow
from utils.config import Settings


@dataclass
class AppState:
    """
    Everything the screens share, owned by the app instance and reached through
    ``self.app.state``.

    Fields:
      - settings: loaded configuration
      - gateway: the data backend
      - cart / order_form: the customer's in-progress order, lost on exit
      - contact_form: the in-progress inquiry

    Admin session state is not kept here; the admin screen owns its own
    SessionGate for as long as it is mounted.
    """

    settings: Settings
    gateway: Gateway
    cart: Cart = field(default_factory=Cart)
    order_form: OrderForm = field(default_factory=OrderForm)
    contact_form: ContactForm = field(default_factory=ContactForm)
    orders: OrderWorkflow = field(init=False)
    contact: ContactWorkflow = field(init=False)

    def __post_init__(self):
        self.orders = OrderWorkflow(self.gateway, self.settings.success_seconds)
        self.contact = ContactWorkflow(self.gateway, self.settings.success_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> AppState:
        database.SEED_DEMO_DATA = settings.seed_demo_data
        gateway = LocalGateway(settings.db_path, session_ttl=settings.session_ttl)
        return cls(settings=settings, gateway=gateway)
