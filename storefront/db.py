"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Dict, Iterable, Optional, Protocol

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    Index,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    or_,
    select,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from storefront.errors import DuplicateUser
from storefront.search import rank_by_name, tokenize

PRODUCT_PATCH_FIELDS = (
    "name",
    "description",
    "price",
    "category",
    "image_id",
    "in_stock",
    "featured",
)

_clock_lock = threading.Lock()
_last_timestamp = 0.0


def creation_timestamp() -> float:
    """Strictly increasing wall-clock timestamp for creation ordering."""
    global _last_timestamp
    with _clock_lock:
        now = time.time()
        if now <= _last_timestamp:
            now = _last_timestamp + 1e-6
        _last_timestamp = now
        return now


class DbClient(Protocol):
    """Interface for database access."""

    def insert_product(
        self,
        *,
        name: str,
        description: str,
        price: float,
        category: str,
        in_stock: bool,
        featured: Optional[bool] = None,
        image_id: Optional[str] = None,
    ) -> "ProductRecord":
        ...

    def get_product(self, product_id: str) -> Optional["ProductRecord"]:
        ...

    def patch_product(
        self, product_id: str, fields: dict
    ) -> Optional["ProductRecord"]:
        ...

    def delete_product(self, product_id: str) -> bool:
        ...

    def list_products(
        self,
        *,
        in_stock: Optional[bool] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> list["ProductRecord"]:
        ...

    def search_products(
        self,
        query: str,
        *,
        in_stock: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list["ProductRecord"]:
        ...

    def list_categories(self) -> list[str]:
        ...

    def insert_order(
        self,
        *,
        product_id: str,
        customer_name: str,
        customer_email: str,
        quantity: int,
        total_price: float,
        status: str,
    ) -> "OrderRecord":
        ...

    def get_order(self, order_id: str) -> Optional["OrderRecord"]:
        ...

    def list_orders_by_status(self) -> list["OrderRecord"]:
        ...

    def update_order_status(
        self, order_id: str, status: str
    ) -> Optional["OrderRecord"]:
        ...

    def insert_contact(
        self, *, name: str, email: str, message: str, status: str
    ) -> "ContactRecord":
        ...

    def get_contact(self, contact_id: str) -> Optional["ContactRecord"]:
        ...

    def list_contacts_by_status(self) -> list["ContactRecord"]:
        ...

    def update_contact_status(
        self, contact_id: str, status: str
    ) -> Optional["ContactRecord"]:
        ...

    def insert_user(
        self,
        *,
        email: Optional[str],
        name: Optional[str] = None,
        email_verification_time: Optional[float] = None,
        is_anonymous: bool = False,
        password_hash: Optional[str] = None,
    ) -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        ...

    def create_session(self, user_id: str, expires_at: float) -> "SessionRecord":
        ...

    def get_session(self, session_id: str) -> Optional["SessionRecord"]:
        ...

    def delete_session(self, session_id: str) -> bool:
        ...


@dataclass
class ProductRecord:
    id: str
    name: str
    description: str
    price: float
    category: str
    in_stock: bool
    featured: Optional[bool] = None
    image_id: Optional[str] = None
    created_at: float = field(default_factory=creation_timestamp)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class OrderRecord:
    id: str
    product_id: str
    customer_name: str
    customer_email: str
    quantity: int
    total_price: float
    status: str
    created_at: float = field(default_factory=creation_timestamp)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class ContactRecord:
    id: str
    name: str
    email: str
    message: str
    status: str
    created_at: float = field(default_factory=creation_timestamp)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class UserRecord:
    id: str
    email: Optional[str]
    name: Optional[str] = None
    email_verification_time: Optional[float] = None
    is_anonymous: bool = False
    password_hash: Optional[str] = None
    created_at: float = field(default_factory=creation_timestamp)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "email_verification_time": self.email_verification_time,
            "is_anonymous": self.is_anonymous,
            "created_at": self.created_at,
        }


@dataclass
class SessionRecord:
    session_id: str
    user_id: str
    expires_at: float
    created_at: float = field(default_factory=lambda: time.time())


def _status_index_order(records: Iterable) -> list:
    # Mirrors a descending scan of a (status, creation time) index.
    return sorted(records, key=lambda r: (r.status, r.created_at), reverse=True)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.products: Dict[str, ProductRecord] = {}
        self.orders: Dict[str, OrderRecord] = {}
        self.contacts: Dict[str, ContactRecord] = {}
        self.users: Dict[str, UserRecord] = {}
        self.sessions: Dict[str, SessionRecord] = {}
        self._users_lock = threading.Lock()

    def insert_product(
        self,
        *,
        name: str,
        description: str,
        price: float,
        category: str,
        in_stock: bool,
        featured: Optional[bool] = None,
        image_id: Optional[str] = None,
    ) -> ProductRecord:
        record = ProductRecord(
            id=uuid.uuid4().hex,
            name=name,
            description=description,
            price=price,
            category=category,
            in_stock=in_stock,
            featured=featured,
            image_id=image_id,
        )
        self.products[record.id] = record
        return record

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        return self.products.get(product_id)

    def patch_product(self, product_id: str, fields: dict) -> Optional[ProductRecord]:
        product = self.products.get(product_id)
        if not product:
            return None
        for key, value in fields.items():
            if key in PRODUCT_PATCH_FIELDS:
                setattr(product, key, value)
        return product

    def delete_product(self, product_id: str) -> bool:
        return self.products.pop(product_id, None) is not None

    def _filter_products(
        self,
        in_stock: Optional[bool],
        category: Optional[str],
        featured: Optional[bool],
    ) -> list[ProductRecord]:
        items = []
        for product in self.products.values():
            if in_stock is not None and product.in_stock != in_stock:
                continue
            if category is not None and product.category != category:
                continue
            if featured is not None and bool(product.featured) != featured:
                continue
            items.append(product)
        return items

    def list_products(
        self,
        *,
        in_stock: Optional[bool] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> list[ProductRecord]:
        items = self._filter_products(in_stock, category, featured)
        if limit is not None:
            items = items[:limit]
        return items

    def search_products(
        self,
        query: str,
        *,
        in_stock: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list[ProductRecord]:
        candidates = self._filter_products(in_stock, category, None)
        return rank_by_name(query, candidates, lambda p: p.name)

    def list_categories(self) -> list[str]:
        return list(dict.fromkeys(p.category for p in self.products.values()))

    def insert_order(
        self,
        *,
        product_id: str,
        customer_name: str,
        customer_email: str,
        quantity: int,
        total_price: float,
        status: str,
    ) -> OrderRecord:
        record = OrderRecord(
            id=uuid.uuid4().hex,
            product_id=product_id,
            customer_name=customer_name,
            customer_email=customer_email,
            quantity=quantity,
            total_price=total_price,
            status=status,
        )
        self.orders[record.id] = record
        return record

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        return self.orders.get(order_id)

    def list_orders_by_status(self) -> list[OrderRecord]:
        return _status_index_order(self.orders.values())

    def update_order_status(self, order_id: str, status: str) -> Optional[OrderRecord]:
        order = self.orders.get(order_id)
        if not order:
            return None
        order.status = status
        return order

    def insert_contact(
        self, *, name: str, email: str, message: str, status: str
    ) -> ContactRecord:
        record = ContactRecord(
            id=uuid.uuid4().hex,
            name=name,
            email=email,
            message=message,
            status=status,
        )
        self.contacts[record.id] = record
        return record

    def get_contact(self, contact_id: str) -> Optional[ContactRecord]:
        return self.contacts.get(contact_id)

    def list_contacts_by_status(self) -> list[ContactRecord]:
        return _status_index_order(self.contacts.values())

    def update_contact_status(
        self, contact_id: str, status: str
    ) -> Optional[ContactRecord]:
        contact = self.contacts.get(contact_id)
        if not contact:
            return None
        contact.status = status
        return contact

    def insert_user(
        self,
        *,
        email: Optional[str],
        name: Optional[str] = None,
        email_verification_time: Optional[float] = None,
        is_anonymous: bool = False,
        password_hash: Optional[str] = None,
    ) -> UserRecord:
        with self._users_lock:
            if email is not None and self.get_user_by_email(email):
                raise DuplicateUser(email)
            record = UserRecord(
                id=uuid.uuid4().hex,
                email=email,
                name=name,
                email_verification_time=email_verification_time,
                is_anonymous=is_anonymous,
                password_hash=password_hash,
            )
            self.users[record.id] = record
            return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        user = self.users.get(user_id)
        if user:
            user.password_hash = password_hash

    def create_session(self, user_id: str, expires_at: float) -> SessionRecord:
        record = SessionRecord(
            session_id=uuid.uuid4().hex, user_id=user_id, expires_at=expires_at
        )
        self.sessions[record.session_id] = record
        return record

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        return self.sessions.get(session_id)

    def delete_session(self, session_id: str) -> bool:
        return self.sessions.pop(session_id, None) is not None


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @staticmethod
    def _to_product(row: "ProductRow") -> ProductRecord:
        return ProductRecord(
            id=row.id,
            name=row.name,
            description=row.description,
            price=row.price,
            category=row.category,
            in_stock=row.in_stock,
            featured=row.featured,
            image_id=row.image_id,
            created_at=row.created_at,
        )

    @staticmethod
    def _to_order(row: "OrderRow") -> OrderRecord:
        return OrderRecord(
            id=row.id,
            product_id=row.product_id,
            customer_name=row.customer_name,
            customer_email=row.customer_email,
            quantity=row.quantity,
            total_price=row.total_price,
            status=row.status,
            created_at=row.created_at,
        )

    @staticmethod
    def _to_contact(row: "ContactRow") -> ContactRecord:
        return ContactRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            message=row.message,
            status=row.status,
            created_at=row.created_at,
        )

    @staticmethod
    def _to_user(row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            email=row.email,
            name=row.name,
            email_verification_time=row.email_verification_time,
            is_anonymous=row.is_anonymous,
            password_hash=row.password_hash,
            created_at=row.created_at,
        )

    def insert_product(
        self,
        *,
        name: str,
        description: str,
        price: float,
        category: str,
        in_stock: bool,
        featured: Optional[bool] = None,
        image_id: Optional[str] = None,
    ) -> ProductRecord:
        with self.Session() as session:
            row = ProductRow(
                id=uuid.uuid4().hex,
                name=name,
                description=description,
                price=price,
                category=category,
                in_stock=in_stock,
                featured=featured,
                image_id=image_id,
                created_at=creation_timestamp(),
            )
            session.add(row)
            session.commit()
            return self._to_product(row)

    def get_product(self, product_id: str) -> Optional[ProductRecord]:
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            return self._to_product(row) if row else None

    def patch_product(self, product_id: str, fields: dict) -> Optional[ProductRecord]:
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            if not row:
                return None
            for key, value in fields.items():
                if key in PRODUCT_PATCH_FIELDS:
                    setattr(row, key, value)
            session.commit()
            return self._to_product(row)

    def delete_product(self, product_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(ProductRow).where(ProductRow.id == product_id)
            )
            session.commit()
            return (result.rowcount or 0) > 0

    def _product_query(
        self,
        in_stock: Optional[bool],
        category: Optional[str],
        featured: Optional[bool],
    ):
        stmt = select(ProductRow)
        if in_stock is not None:
            stmt = stmt.where(ProductRow.in_stock == in_stock)
        if category is not None:
            stmt = stmt.where(ProductRow.category == category)
        if featured is not None:
            stmt = stmt.where(ProductRow.featured == featured)
        return stmt.order_by(ProductRow.created_at.asc())

    def list_products(
        self,
        *,
        in_stock: Optional[bool] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> list[ProductRecord]:
        stmt = self._product_query(in_stock, category, featured)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            return [self._to_product(row) for row in rows]

    def search_products(
        self,
        query: str,
        *,
        in_stock: Optional[bool] = None,
        category: Optional[str] = None,
    ) -> list[ProductRecord]:
        terms = tokenize(query)
        if not terms:
            return []
        stmt = self._product_query(in_stock, category, None).where(
            or_(*[ProductRow.name.ilike(f"%{term}%") for term in terms])
        )
        with self.Session() as session:
            rows = session.execute(stmt).scalars().all()
            candidates = [self._to_product(row) for row in rows]
        return rank_by_name(query, candidates, lambda p: p.name)

    def list_categories(self) -> list[str]:
        stmt = (
            select(ProductRow.category)
            .group_by(ProductRow.category)
            .order_by(func.min(ProductRow.created_at))
        )
        with self.Session() as session:
            return list(session.execute(stmt).scalars().all())

    def insert_order(
        self,
        *,
        product_id: str,
        customer_name: str,
        customer_email: str,
        quantity: int,
        total_price: float,
        status: str,
    ) -> OrderRecord:
        with self.Session() as session:
            row = OrderRow(
                id=uuid.uuid4().hex,
                product_id=product_id,
                customer_name=customer_name,
                customer_email=customer_email,
                quantity=quantity,
                total_price=total_price,
                status=status,
                created_at=creation_timestamp(),
            )
            session.add(row)
            session.commit()
            return self._to_order(row)

    def get_order(self, order_id: str) -> Optional[OrderRecord]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            return self._to_order(row) if row else None

    def list_orders_by_status(self) -> list[OrderRecord]:
        stmt = select(OrderRow).order_by(
            OrderRow.status.desc(), OrderRow.created_at.desc()
        )
        with self.Session() as session:
            return [self._to_order(row) for row in session.execute(stmt).scalars()]

    def update_order_status(self, order_id: str, status: str) -> Optional[OrderRecord]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            if not row:
                return None
            row.status = status
            session.commit()
            return self._to_order(row)

    def insert_contact(
        self, *, name: str, email: str, message: str, status: str
    ) -> ContactRecord:
        with self.Session() as session:
            row = ContactRow(
                id=uuid.uuid4().hex,
                name=name,
                email=email,
                message=message,
                status=status,
                created_at=creation_timestamp(),
            )
            session.add(row)
            session.commit()
            return self._to_contact(row)

    def get_contact(self, contact_id: str) -> Optional[ContactRecord]:
        with self.Session() as session:
            row = session.get(ContactRow, contact_id)
            return self._to_contact(row) if row else None

    def list_contacts_by_status(self) -> list[ContactRecord]:
        stmt = select(ContactRow).order_by(
            ContactRow.status.desc(), ContactRow.created_at.desc()
        )
        with self.Session() as session:
            return [self._to_contact(row) for row in session.execute(stmt).scalars()]

    def update_contact_status(
        self, contact_id: str, status: str
    ) -> Optional[ContactRecord]:
        with self.Session() as session:
            row = session.get(ContactRow, contact_id)
            if not row:
                return None
            row.status = status
            session.commit()
            return self._to_contact(row)

    def insert_user(
        self,
        *,
        email: Optional[str],
        name: Optional[str] = None,
        email_verification_time: Optional[float] = None,
        is_anonymous: bool = False,
        password_hash: Optional[str] = None,
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                id=uuid.uuid4().hex,
                email=email,
                name=name,
                email_verification_time=email_verification_time,
                is_anonymous=is_anonymous,
                password_hash=password_hash,
                created_at=creation_timestamp(),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise DuplicateUser(email)
            return self._to_user(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.execute(
                select(UserRow).where(UserRow.email == email)
            ).scalar_one_or_none()
            return self._to_user(row) if row else None

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return
            row.password_hash = password_hash
            session.commit()

    def create_session(self, user_id: str, expires_at: float) -> SessionRecord:
        with self.Session() as session:
            row = SessionRow(
                session_id=uuid.uuid4().hex,
                user_id=user_id,
                created_at=time.time(),
                expires_at=expires_at,
            )
            session.add(row)
            session.commit()
            return SessionRecord(
                session_id=row.session_id,
                user_id=row.user_id,
                expires_at=row.expires_at,
                created_at=row.created_at,
            )

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        with self.Session() as session:
            row = session.get(SessionRow, session_id)
            if not row:
                return None
            return SessionRecord(
                session_id=row.session_id,
                user_id=row.user_id,
                expires_at=row.expires_at,
                created_at=row.created_at,
            )

    def delete_session(self, session_id: str) -> bool:
        with self.Session() as session:
            result = session.execute(
                delete(SessionRow).where(SessionRow.session_id == session_id)
            )
            session.commit()
            return (result.rowcount or 0) > 0


Base = declarative_base()


class ProductRow(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    category = Column(String, nullable=False, index=True)
    in_stock = Column(Boolean, nullable=False, index=True)
    featured = Column(Boolean, nullable=True, index=True)
    image_id = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class OrderRow(Base):
    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_status_created", "status", "created_at"),)

    id = Column(String, primary_key=True)
    # No foreign key: orders outlive deleted products.
    product_id = Column(String, nullable=False, index=True)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    total_price = Column(Float, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class ContactRow(Base):
    __tablename__ = "contacts"
    __table_args__ = (Index("ix_contacts_status_created", "status", "created_at"),)

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True, unique=True)
    name = Column(String, nullable=True)
    email_verification_time = Column(Float, nullable=True)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    password_hash = Column(String, nullable=True)
    created_at = Column(Float, nullable=False)


class SessionRow(Base):
    __tablename__ = "auth_sessions"

    session_id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    created_at = Column(Float, nullable=False)
    expires_at = Column(Float, nullable=False)
