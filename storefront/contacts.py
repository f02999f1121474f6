"""
Contact message intake.
"""

from __future__ import annotations

import logging
from typing import Optional

from storefront.auth import require_identity
from storefront.changes import ChangeFeed
from storefront.db import ContactRecord, DbClient
from storefront.errors import NotFound

logger = logging.getLogger(__name__)

CONTACT_STATUSES = ("new", "read", "replied")


def submit_contact(
    db: DbClient, changes: ChangeFeed, *, name: str, email: str, message: str
) -> str:
    contact = db.insert_contact(name=name, email=email, message=message, status="new")
    changes.bump("contacts")
    logger.info("Received contact message %s", contact.id)
    return contact.id


def list_contacts(db: DbClient, identity: Optional[str]) -> list[ContactRecord]:
    require_identity(identity)
    return db.list_contacts_by_status()


def update_contact_status(
    db: DbClient,
    changes: ChangeFeed,
    identity: Optional[str],
    contact_id: str,
    status: str,
) -> ContactRecord:
    require_identity(identity)
    if status not in CONTACT_STATUSES:
        raise ValueError(f"Unknown contact status: {status}")
    contact = db.update_contact_status(contact_id, status)
    if not contact:
        raise NotFound("Contact", contact_id)
    changes.bump("contacts")
    return contact
