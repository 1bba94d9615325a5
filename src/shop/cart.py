# in-memory shopping cart, gone when the app closes

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple

from db.models import OrderItem, Product


@dataclass(frozen=True)
class CartLine:
    product_id: str
    name: str
    price: Decimal  # snapshot taken when first added
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_order_item(self) -> OrderItem:
        return OrderItem(
            product_id=self.product_id,
            product_name=self.name,
            quantity=self.quantity,
            price=self.price,
        )


class Cart:
    """
    Lines are kept in first-add order. There is at most one line per product
    and every line has quantity >= 1.
    """

    def __init__(self) -> None:
        self._lines: List[CartLine] = []

    def _index_of(self, product_id: str) -> Optional[int]:
        for i, line in enumerate(self._lines):
            if line.product_id == product_id:
                return i
        return None

    def add(self, product: Product) -> CartLine:
        """Add one unit; merges into the existing line for the product."""
        idx = self._index_of(product.id)
        if idx is None:
            line = CartLine(
                product_id=product.id,
                name=product.name,
                price=product.price,
                quantity=1,
            )
            self._lines.append(line)
        else:
            line = replace(self._lines[idx], quantity=self._lines[idx].quantity + 1)
            self._lines[idx] = line
        return line

    def update_quantity(self, product_id: str, quantity: int) -> None:
        """Set a line's quantity in place. Zero or less removes the line."""
        if quantity <= 0:
            self.remove(product_id)
            return
        idx = self._index_of(product_id)
        if idx is not None:
            self._lines[idx] = replace(self._lines[idx], quantity=int(quantity))

    def remove(self, product_id: str) -> None:
        idx = self._index_of(product_id)
        if idx is not None:
            del self._lines[idx]

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    def quantity_of(self, product_id: str) -> int:
        idx = self._index_of(product_id)
        return 0 if idx is None else self._lines[idx].quantity

    def count_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    def to_order_items(self) -> Tuple[OrderItem, ...]:
        return tuple(line.to_order_item() for line in self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    def __iter__(self) -> Iterator[CartLine]:
        return iter(tuple(self._lines))
