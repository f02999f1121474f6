"""
HTTP routes for the storefront backend API.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from storefront import auth, catalog, contacts, orders
from storefront.changes import ChangeFeed
from storefront.config import Settings, get_settings
from storefront.db import DbClient
from storefront.dependencies import (
    get_bearer_token,
    get_change_feed,
    get_db_client,
    get_identity,
    get_storage_client,
)
from storefront.schemas import (
    AdminSignInRequest,
    AdminSignInResponse,
    CategoriesResponse,
    ChangeVersionsResponse,
    ContactResponse,
    ContactStatusRequest,
    ContactSubmitRequest,
    CreatedResponse,
    OrderCreateRequest,
    OrderResponse,
    OrderStatusRequest,
    ProductCreateRequest,
    ProductResponse,
    ProductUpdateRequest,
    SessionResponse,
    SignInRequest,
    SignOutResponse,
    StatusResponse,
    UploadUrlResponse,
    UserResponse,
)
from storefront.storage import StorageClient


router = APIRouter()


@router.get("/health", response_model=StatusResponse)
def health():
    return StatusResponse(status="ok")


@router.get("/changes", response_model=ChangeVersionsResponse)
def change_versions(changes: ChangeFeed = Depends(get_change_feed)):
    return ChangeVersionsResponse(versions=changes.versions())


# Catalog


@router.get("/products", response_model=list[ProductResponse])
def list_products(
    search: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None, max_length=100),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    return catalog.list_products(
        db,
        storage,
        search=search,
        category=category,
        image_url_expires=settings.image_url_expires_seconds,
    )


@router.get("/products/featured", response_model=list[ProductResponse])
def get_featured(
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    return catalog.get_featured(
        db, storage, image_url_expires=settings.image_url_expires_seconds
    )


@router.get("/products/categories", response_model=CategoriesResponse)
def get_categories(db: DbClient = Depends(get_db_client)):
    return CategoriesResponse(categories=catalog.get_categories(db))


@router.get("/products/{product_id}", response_model=Optional[ProductResponse])
def get_product(
    product_id: str,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    """Returns ``null`` when the product does not exist."""
    return catalog.get_product(
        db, storage, product_id, image_url_expires=settings.image_url_expires_seconds
    )


@router.post("/products", response_model=CreatedResponse, status_code=201)
def create_product(
    payload: ProductCreateRequest,
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
):
    product_id = catalog.create_product(
        db,
        changes,
        identity,
        name=payload.name,
        description=payload.description,
        price=payload.price,
        category=payload.category,
        image_id=payload.image_id,
        featured=payload.featured,
    )
    return CreatedResponse(id=product_id)


@router.patch("/products/{product_id}", response_model=ProductResponse)
def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    changes: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
):
    product = catalog.update_product(
        db,
        changes,
        identity,
        product_id,
        **payload.model_dump(exclude_unset=True),
    )
    return catalog.with_image_url(
        product, storage, settings.image_url_expires_seconds
    )


@router.delete("/products/{product_id}", response_model=StatusResponse)
def delete_product(
    product_id: str,
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
):
    catalog.delete_product(db, changes, identity, product_id)
    return StatusResponse(status="ok")


@router.post("/products/upload-url", response_model=UploadUrlResponse)
def generate_upload_url(
    identity: Optional[str] = Depends(get_identity),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    return catalog.generate_upload_url(
        storage, identity, expires_in=settings.upload_url_expires_seconds
    )


# Orders


@router.post("/orders", response_model=CreatedResponse, status_code=201)
def create_order(
    payload: OrderCreateRequest,
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
):
    order_id = orders.create_order(
        db,
        changes,
        product_id=payload.product_id,
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        quantity=payload.quantity,
    )
    return CreatedResponse(id=order_id)


@router.get("/orders", response_model=list[OrderResponse])
def list_orders(
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
):
    return orders.list_orders(
        db, storage, identity, image_url_expires=settings.image_url_expires_seconds
    )


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    payload: OrderStatusRequest,
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
):
    order = orders.update_order_status(db, changes, identity, order_id, payload.status)
    return order.as_dict()


# Contacts


@router.post("/contacts", response_model=CreatedResponse, status_code=201)
def submit_contact(
    payload: ContactSubmitRequest,
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
):
    contact_id = contacts.submit_contact(
        db,
        changes,
        name=payload.name,
        email=payload.email,
        message=payload.message,
    )
    return CreatedResponse(id=contact_id)


@router.get("/contacts", response_model=list[ContactResponse])
def list_contacts(
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
):
    return [c.as_dict() for c in contacts.list_contacts(db, identity)]


@router.patch("/contacts/{contact_id}/status", response_model=ContactResponse)
def update_contact_status(
    contact_id: str,
    payload: ContactStatusRequest,
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
):
    contact = contacts.update_contact_status(
        db, changes, identity, contact_id, payload.status
    )
    return contact.as_dict()


# Auth


@router.post("/auth/admin-check", response_model=AdminSignInResponse)
def admin_check(
    payload: AdminSignInRequest,
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
):
    """
    Validate admin credentials. The client signs in via /auth/sign-in next.
    """
    return auth.admin_sign_in(db, settings, changes, payload.email, payload.password)


@router.post("/auth/sign-in", response_model=SessionResponse)
def sign_in(
    payload: SignInRequest,
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
):
    result = auth.sign_in_password(
        db, settings, changes, payload.email, payload.password, payload.flow
    )
    return SessionResponse(token=result.token, user_id=result.user_id)


@router.post("/auth/anonymous", response_model=SessionResponse)
def sign_in_anonymous(
    db: DbClient = Depends(get_db_client),
    changes: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
):
    result = auth.sign_in_anonymous(db, settings, changes)
    return SessionResponse(token=result.token, user_id=result.user_id)


@router.post("/auth/sign-out", response_model=SignOutResponse)
def sign_out(
    token: Optional[str] = Depends(get_bearer_token),
    db: DbClient = Depends(get_db_client),
    settings: Settings = Depends(get_settings),
):
    return SignOutResponse(signed_out=auth.sign_out(db, settings, token))


@router.get("/auth/me", response_model=Optional[UserResponse])
def me(
    identity: Optional[str] = Depends(get_identity),
    db: DbClient = Depends(get_db_client),
):
    user = auth.logged_in_user(db, identity)
    return user.as_dict() if user else None
