from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever a line is added, edited or removed, or the cart is emptied
    by a successful order. The order screen redraws its cart panel on it.

    If posted from outside OrderScreen, make sure to post at App level
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Fired when a new order is placed.
    """

    bubble = True

    def __init__(self, order_id: str) -> None:
        super().__init__()
        self.order_id = order_id


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode


class SessionChangedMessage(Message):
    """
    Posted by the admin screen when its session gate changes state
    (signed in, signed out, expired).
    """

    bubble = True

    def __init__(self, state: str) -> None:
        super().__init__()
        self.state = state
