"""
Provision a password account so the admin can complete sign-in.

The admin credential check only makes sure a user row exists; the session
itself comes from the password provider, which needs a registered password.
Run this once per environment with the same email/password as
ADMIN_EMAIL/ADMIN_PASSWORD.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storefront.auth import hash_password
from storefront.config import get_settings
from storefront.db import InMemoryDbClient
from storefront.dependencies import get_change_feed, get_db_client

logger = logging.getLogger(__name__)


def provision_account(
    db,
    changes,
    email: str,
    password: str,
    *,
    name: str | None = None,
    force: bool = False,
) -> bool:
    user = db.get_user_by_email(email)
    if user and user.password_hash and not force:
        logger.info(
            "Account for %s already has a password; use --force to reset", email
        )
        return False

    password_hash = hash_password(password)
    if user:
        db.set_password_hash(user.id, password_hash)
        logger.info("Set password for existing user %s", user.id)
    else:
        user = db.insert_user(email=email, name=name, password_hash=password_hash)
        changes.bump("users")
        logger.info("Created user %s", user.id)
    return True


def main() -> int:
    parser = argparse.ArgumentParser(description="Create or reset a password account")
    parser.add_argument("email", type=str, help="Account email")
    parser.add_argument(
        "--name",
        type=str,
        default=None,
        help="Display name for a newly created user",
    )
    parser.add_argument(
        "--password",
        type=str,
        default=None,
        help="Password (prompted when omitted)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing password",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    db = get_db_client()
    if isinstance(db, InMemoryDbClient):
        settings = get_settings()
        logger.error(
            "No database configured (DATABASE_URL=%r); refusing to write to an in-memory store",
            settings.database_url,
        )
        return 1

    password = args.password or getpass.getpass("Password: ")
    if not password:
        logger.error("Password must not be empty")
        return 1

    provision_account(
        db,
        get_change_feed(),
        args.email,
        password,
        name=args.name,
        force=args.force,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
