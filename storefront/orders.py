"""
Order intake and admin order management.
"""

from __future__ import annotations

import logging
from typing import Optional

from storefront.auth import require_identity
from storefront.catalog import with_image_url
from storefront.changes import ChangeFeed
from storefront.db import DbClient, OrderRecord
from storefront.errors import NotFound
from storefront.storage import StorageClient

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "confirmed", "shipped", "delivered")


def create_order(
    db: DbClient,
    changes: ChangeFeed,
    *,
    product_id: str,
    customer_name: str,
    customer_email: str,
    quantity: int,
) -> str:
    """
    Place an order for a product.

    The total is the product's current price times quantity, stored as a
    snapshot. Stock is neither checked nor decremented.
    """
    if quantity < 1:
        raise ValueError("quantity must be a positive integer")
    product = db.get_product(product_id)
    if not product:
        raise NotFound("Product", product_id)

    order = db.insert_order(
        product_id=product_id,
        customer_name=customer_name,
        customer_email=customer_email,
        quantity=quantity,
        total_price=product.price * quantity,
        status="pending",
    )
    changes.bump("orders")
    logger.info("Created order %s for product %s", order.id, product_id)
    return order.id


def list_orders(
    db: DbClient,
    storage: StorageClient,
    identity: Optional[str],
    *,
    image_url_expires: int = 3600,
) -> list[dict]:
    """All orders joined with their current product (None once deleted)."""
    require_identity(identity)
    results = []
    for order in db.list_orders_by_status():
        product = db.get_product(order.product_id)
        item = order.as_dict()
        item["product"] = (
            with_image_url(product, storage, image_url_expires) if product else None
        )
        results.append(item)
    return results


def update_order_status(
    db: DbClient,
    changes: ChangeFeed,
    identity: Optional[str],
    order_id: str,
    status: str,
) -> OrderRecord:
    # Any status may follow any other; the labels are not a state machine.
    require_identity(identity)
    if status not in ORDER_STATUSES:
        raise ValueError(f"Unknown order status: {status}")
    order = db.update_order_status(order_id, status)
    if not order:
        raise NotFound("Order", order_id)
    changes.bump("orders")
    logger.info("Order %s status -> %s", order_id, status)
    return order
