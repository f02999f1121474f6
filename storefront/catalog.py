"""
Catalog queries and admin catalog mutations.
"""

from __future__ import annotations

import logging
import math
from typing import Optional
from uuid import uuid4

from storefront.auth import require_identity
from storefront.changes import ChangeFeed
from storefront.db import PRODUCT_PATCH_FIELDS, DbClient, ProductRecord
from storefront.errors import NotFound
from storefront.storage import StorageClient

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 6
IMAGE_PREFIX = "product-images"


def resolve_image_url(
    storage: StorageClient, image_id: Optional[str], expires_in: int = 3600
) -> Optional[str]:
    if not image_id:
        return None
    return storage.presign_get(image_id, expires_in=expires_in)


def with_image_url(
    product: ProductRecord, storage: StorageClient, expires_in: int = 3600
) -> dict:
    item = product.as_dict()
    item["image_url"] = resolve_image_url(storage, product.image_id, expires_in)
    return item


def list_products(
    db: DbClient,
    storage: StorageClient,
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    image_url_expires: int = 3600,
) -> list[dict]:
    """
    List in-stock products.

    A search string takes precedence and ignores ``category``; results come
    back by relevance. Otherwise an optional category narrows the list.
    """
    if search:
        products = db.search_products(search, in_stock=True)
    elif category:
        products = db.list_products(in_stock=True, category=category)
    else:
        products = db.list_products(in_stock=True)
    return [with_image_url(p, storage, image_url_expires) for p in products]


def get_featured(
    db: DbClient, storage: StorageClient, *, image_url_expires: int = 3600
) -> list[dict]:
    products = db.list_products(in_stock=True, featured=True, limit=FEATURED_LIMIT)
    return [with_image_url(p, storage, image_url_expires) for p in products]


def get_product(
    db: DbClient,
    storage: StorageClient,
    product_id: str,
    *,
    image_url_expires: int = 3600,
) -> Optional[dict]:
    product = db.get_product(product_id)
    if not product:
        return None
    return with_image_url(product, storage, image_url_expires)


def get_categories(db: DbClient) -> list[str]:
    # Includes out-of-stock products so the category picker stays populated.
    return db.list_categories()


def _check_price(price: float) -> None:
    if not math.isfinite(price) or price < 0:
        raise ValueError("price must be a finite, non-negative number")


def create_product(
    db: DbClient,
    changes: ChangeFeed,
    identity: Optional[str],
    *,
    name: str,
    description: str,
    price: float,
    category: str,
    image_id: Optional[str] = None,
    featured: Optional[bool] = None,
) -> str:
    require_identity(identity)
    _check_price(price)
    product = db.insert_product(
        name=name,
        description=description,
        price=price,
        category=category,
        in_stock=True,
        featured=featured,
        image_id=image_id,
    )
    changes.bump("products")
    logger.info("Created product %s", product.id)
    return product.id


def update_product(
    db: DbClient,
    changes: ChangeFeed,
    identity: Optional[str],
    product_id: str,
    **fields,
) -> ProductRecord:
    require_identity(identity)
    unknown = set(fields) - set(PRODUCT_PATCH_FIELDS)
    if unknown:
        raise ValueError(f"Unknown product fields: {sorted(unknown)}")
    patch = {key: value for key, value in fields.items() if value is not None}
    if "price" in patch:
        _check_price(patch["price"])

    product = db.patch_product(product_id, patch)
    if not product:
        raise NotFound("Product", product_id)
    changes.bump("products")
    logger.info("Updated product %s fields=%s", product_id, sorted(patch))
    return product


def delete_product(
    db: DbClient, changes: ChangeFeed, identity: Optional[str], product_id: str
) -> None:
    """Remove a product. Orders that reference it are left as they are."""
    require_identity(identity)
    if not db.delete_product(product_id):
        raise NotFound("Product", product_id)
    changes.bump("products")
    logger.info("Deleted product %s", product_id)


def generate_upload_url(
    storage: StorageClient, identity: Optional[str], *, expires_in: int = 900
) -> dict:
    """
    Reserve a storage key for a product image and return a presigned PUT URL.

    Once the client has uploaded to ``upload_url``, ``image_id`` can be passed
    to ``create_product`` or ``update_product``.
    """
    require_identity(identity)
    image_id = f"{IMAGE_PREFIX}/{uuid4().hex}"
    upload_url = storage.presign_put(image_id, expires_in=expires_in)
    return {"upload_url": upload_url, "image_id": image_id}
