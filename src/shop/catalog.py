from __future__ import annotations

from typing import Any, Dict, Iterable, List, Literal, Sequence

from db.gateway import Filter, Gateway, GatewayError, OrderBy
from db.models import Product
from utils.logger import get_logger

_logger = get_logger(__name__)

ALL_FLAVORS = "all"

Purpose = Literal["browse", "order", "admin"]


def parse_products(rows: Iterable[Dict[str, Any]]) -> List[Product]:
    """Validate raw rows; malformed ones are logged and left out."""
    products: List[Product] = []
    for row in rows:
        try:
            products.append(Product.from_row(row))
        except (ValueError, TypeError, KeyError) as e:
            _logger.warning(f"Skipping malformed product row {row.get('id')!r}: {e}")
    return products


async def load_catalog(gateway: Gateway, purpose: Purpose = "browse") -> List[Product]:
    """
    Fetch the catalog for a view.

    - browse / admin: every product, newest first. Out-of-stock products are
      kept so the browse view can show them with a disabled action.
    - order: only products that can be ordered, by name.

    Returns an empty list if the gateway fails; the caller reloads on its next
    mount or activation.
    """
    if purpose == "order":
        filters = [Filter("stock_status", "neq", "out_of_stock")]
        order_by = OrderBy("name")
    else:
        filters = []
        order_by = OrderBy("created_at", descending=True)

    try:
        rows = await gateway.select("products", filters, order_by)
    except GatewayError as e:
        _logger.warning(f"Could not load catalog ({purpose}): {e}")
        return []
    return parse_products(rows)


async def load_featured(gateway: Gateway, limit: int = 3) -> List[Product]:
    """Featured products for the home screen."""
    try:
        rows = await gateway.select(
            "products", [Filter("is_featured", "eq", True)], None, limit
        )
    except GatewayError as e:
        _logger.warning(f"Could not load featured products: {e}")
        return []
    return parse_products(rows)


def facet_values(products: Sequence[Product]) -> List[str]:
    """"all" followed by each distinct flavor in the order first seen."""
    facets = [ALL_FLAVORS]
    for p in products:
        if p.flavor not in facets:
            facets.append(p.flavor)
    return facets


def filter_by_flavor(products: Sequence[Product], flavor: str) -> List[Product]:
    if flavor == ALL_FLAVORS:
        return list(products)
    return [p for p in products if p.flavor == flavor]


def can_order(product: Product) -> bool:
    return product.stock_status != "out_of_stock"
