"""
Database abstraction for Postgres and an in-memory test implementation.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, replace
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    JSON,
    Integer,
    String,
    Text,
    create_engine,
    func,
    select,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker

ORDER_FIELDS = (
    "status",
    "payment_status",
    "shipping_date",
    "delivery_date",
    "notes",
)
REVIEW_FIELDS = ("rating", "comment", "verified")
USER_FIELDS = ("name", "email", "role", "is_active", "phone")


@dataclass
class UserRecord:
    id: str
    name: str
    email: str
    password_hash: str
    role: str = "user"
    phone: Optional[str] = None
    is_active: bool = True
    created_at: float = field(default_factory=lambda: time.time())

    def as_public_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "isActive": self.is_active,
            "createdAt": self.created_at,
        }


@dataclass
class ProductRecord:
    id: int
    name: str
    price: float
    stock: int = 0
    image_url: Optional[str] = None
    rating: float = 0.0
    reviews_count: int = 0
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class OrderRecord:
    id: int
    order_number: str
    user_id: Optional[str]
    total_amount: float
    items: list = field(default_factory=list)
    status: str = "pending"
    shipping_address: Optional[str] = None
    payment_method: str = "cash_on_delivery"
    payment_status: str = "pending"
    shipping_date: Optional[str] = None
    delivery_date: Optional[str] = None
    notes: Optional[str] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())


@dataclass
class ReviewRecord:
    id: int
    product_id: int
    user_id: str
    user_name: str
    rating: int
    comment: str
    user_avatar: Optional[str] = None
    verified: bool = False
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())


class DbClient(Protocol):
    """Interface for database access."""

    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str = "user",
        phone: Optional[str] = None,
    ) -> UserRecord:
        ...

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    def list_users(self) -> list[UserRecord]:
        ...

    def update_user(self, user_id: str, fields: dict) -> Optional[UserRecord]:
        ...

    def delete_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    def create_product(
        self,
        name: str,
        price: float,
        stock: int = 0,
        image_url: Optional[str] = None,
    ) -> ProductRecord:
        ...

    def get_product(self, product_id: int) -> Optional[ProductRecord]:
        ...

    def list_products(self) -> list[ProductRecord]:
        ...

    def update_product_rating(
        self, product_id: int, rating: float, reviews_count: int
    ) -> None:
        ...

    def create_order(
        self,
        *,
        user_id: Optional[str],
        total_amount: float,
        items: Optional[list] = None,
        shipping_address: Optional[str],
        payment_method: str = "cash_on_delivery",
        notes: Optional[str] = None,
    ) -> OrderRecord:
        ...

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        ...

    def list_orders(
        self,
        status: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> list[tuple[OrderRecord, Optional[UserRecord]]]:
        ...

    def update_order(self, order_id: int, fields: dict) -> Optional[OrderRecord]:
        ...

    def delete_order(self, order_id: int) -> Optional[OrderRecord]:
        ...

    def create_review(
        self,
        *,
        product_id: int,
        user_id: str,
        user_name: str,
        rating: int,
        comment: str,
        user_avatar: Optional[str] = None,
        verified: bool = False,
    ) -> ReviewRecord:
        ...

    def get_review(self, review_id: int) -> Optional[ReviewRecord]:
        ...

    def find_review(self, product_id: int, user_id: str) -> Optional[ReviewRecord]:
        ...

    def list_reviews(
        self,
        *,
        product_id: Optional[int] = None,
        user_id: Optional[str] = None,
        rating: Optional[int] = None,
        verified: Optional[bool] = None,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> list[ReviewRecord]:
        ...

    def update_review(self, review_id: int, fields: dict) -> Optional[ReviewRecord]:
        ...

    def delete_review(self, review_id: int) -> bool:
        ...


def _pick(fields: dict, allowed: tuple[str, ...]) -> dict:
    return {k: v for k, v in fields.items() if k in allowed}


def _review_sort_key(sort_by: str):
    if sort_by not in ("created_at", "updated_at", "rating", "id"):
        sort_by = "created_at"
    return lambda review: getattr(review, sort_by)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.products: Dict[int, ProductRecord] = {}
        self.orders: Dict[int, OrderRecord] = {}
        self.reviews: Dict[int, ReviewRecord] = {}
        self._next_ids = {"product": 1, "order": 1, "review": 1}

    def _next_id(self, kind: str) -> int:
        value = self._next_ids[kind]
        self._next_ids[kind] = value + 1
        return value

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.products.clear()
        self.orders.clear()
        self.reviews.clear()
        self._next_ids = {"product": 1, "order": 1, "review": 1}

    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str = "user",
        phone: Optional[str] = None,
    ) -> UserRecord:
        record = UserRecord(
            id=uuid.uuid4().hex,
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
            phone=phone,
        )
        self.users[record.id] = record
        return record

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = (email or "").lower()
        for user in self.users.values():
            if user.email.lower() == wanted:
                return user
        return None

    def list_users(self) -> list[UserRecord]:
        return sorted(self.users.values(), key=lambda u: u.created_at)

    def update_user(self, user_id: str, fields: dict) -> Optional[UserRecord]:
        user = self.users.get(user_id)
        if not user:
            return None
        updated = replace(user, **_pick(fields, USER_FIELDS))
        self.users[user_id] = updated
        return updated

    def delete_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.pop(user_id, None)

    def create_product(
        self,
        name: str,
        price: float,
        stock: int = 0,
        image_url: Optional[str] = None,
    ) -> ProductRecord:
        record = ProductRecord(
            id=self._next_id("product"),
            name=name,
            price=price,
            stock=stock,
            image_url=image_url,
        )
        self.products[record.id] = record
        return record

    def get_product(self, product_id: int) -> Optional[ProductRecord]:
        return self.products.get(product_id)

    def list_products(self) -> list[ProductRecord]:
        return sorted(self.products.values(), key=lambda p: p.id)

    def update_product_rating(
        self, product_id: int, rating: float, reviews_count: int
    ) -> None:
        product = self.products.get(product_id)
        if product:
            product.rating = rating
            product.reviews_count = reviews_count
            product.updated_at = time.time()

    def create_order(
        self,
        *,
        user_id: Optional[str],
        total_amount: float,
        items: Optional[list] = None,
        shipping_address: Optional[str],
        payment_method: str = "cash_on_delivery",
        notes: Optional[str] = None,
    ) -> OrderRecord:
        record = OrderRecord(
            id=self._next_id("order"),
            order_number=f"ORD-{int(time.time() * 1000)}",
            user_id=user_id,
            total_amount=total_amount,
            items=list(items or []),
            shipping_address=shipping_address,
            payment_method=payment_method,
            notes=notes,
        )
        self.orders[record.id] = record
        return record

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        return self.orders.get(order_id)

    def list_orders(
        self,
        status: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> list[tuple[OrderRecord, Optional[UserRecord]]]:
        results = []
        for order in sorted(
            self.orders.values(), key=lambda o: o.created_at, reverse=True
        ):
            user = self.users.get(order.user_id) if order.user_id else None
            if status and order.status != status:
                continue
            if customer_email and (not user or user.email != customer_email):
                continue
            results.append((order, user))
        return results

    def update_order(self, order_id: int, fields: dict) -> Optional[OrderRecord]:
        order = self.orders.get(order_id)
        if not order:
            return None
        updated = replace(order, **_pick(fields, ORDER_FIELDS), updated_at=time.time())
        self.orders[order_id] = updated
        return updated

    def delete_order(self, order_id: int) -> Optional[OrderRecord]:
        return self.orders.pop(order_id, None)

    def create_review(
        self,
        *,
        product_id: int,
        user_id: str,
        user_name: str,
        rating: int,
        comment: str,
        user_avatar: Optional[str] = None,
        verified: bool = False,
    ) -> ReviewRecord:
        record = ReviewRecord(
            id=self._next_id("review"),
            product_id=product_id,
            user_id=user_id,
            user_name=user_name,
            rating=rating,
            comment=comment,
            user_avatar=user_avatar,
            verified=verified,
        )
        self.reviews[record.id] = record
        return record

    def get_review(self, review_id: int) -> Optional[ReviewRecord]:
        return self.reviews.get(review_id)

    def find_review(self, product_id: int, user_id: str) -> Optional[ReviewRecord]:
        for review in self.reviews.values():
            if review.product_id == product_id and review.user_id == user_id:
                return review
        return None

    def list_reviews(
        self,
        *,
        product_id: Optional[int] = None,
        user_id: Optional[str] = None,
        rating: Optional[int] = None,
        verified: Optional[bool] = None,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> list[ReviewRecord]:
        items = [
            review
            for review in self.reviews.values()
            if (product_id is None or review.product_id == product_id)
            and (user_id is None or review.user_id == user_id)
            and (rating is None or review.rating == rating)
            and (verified is None or review.verified == verified)
        ]
        return sorted(items, key=_review_sort_key(sort_by), reverse=descending)

    def update_review(self, review_id: int, fields: dict) -> Optional[ReviewRecord]:
        review = self.reviews.get(review_id)
        if not review:
            return None
        updated = replace(
            review, **_pick(fields, REVIEW_FIELDS), updated_at=time.time()
        )
        self.reviews[review_id] = updated
        return updated

    def delete_review(self, review_id: int) -> bool:
        return self.reviews.pop(review_id, None) is not None


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
    def _to_user(row: "UserRow") -> UserRecord:
        return UserRecord(
            id=row.id,
            name=row.name,
            email=row.email,
            password_hash=row.password_hash,
            role=row.role,
            phone=row.phone,
            is_active=row.is_active,
            created_at=row.created_at,
        )

    @staticmethod
    def _to_product(row: "ProductRow") -> ProductRecord:
        return ProductRecord(
            id=row.id,
            name=row.name,
            price=row.price,
            stock=row.stock,
            image_url=row.image_url,
            rating=row.rating,
            reviews_count=row.reviews_count,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _to_order(row: "OrderRow") -> OrderRecord:
        return OrderRecord(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            total_amount=row.total_amount,
            items=list(row.items or []),
            status=row.status,
            shipping_address=row.shipping_address,
            payment_method=row.payment_method,
            payment_status=row.payment_status,
            shipping_date=row.shipping_date,
            delivery_date=row.delivery_date,
            notes=row.notes,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    @staticmethod
    def _to_review(row: "ReviewRow") -> ReviewRecord:
        return ReviewRecord(
            id=row.id,
            product_id=row.product_id,
            user_id=row.user_id,
            user_name=row.user_name,
            rating=row.rating,
            comment=row.comment,
            user_avatar=row.user_avatar,
            verified=row.verified,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        role: str = "user",
        phone: Optional[str] = None,
    ) -> UserRecord:
        with self.Session() as session:
            row = UserRow(
                id=uuid.uuid4().hex,
                name=name,
                email=email,
                password_hash=password_hash,
                role=role,
                phone=phone,
                is_active=True,
                created_at=time.time(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_user(row)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            return self._to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self.Session() as session:
            stmt = select(UserRow).where(
                func.lower(UserRow.email) == (email or "").lower()
            )
            row = session.execute(stmt).scalars().first()
            return self._to_user(row) if row else None

    def list_users(self) -> list[UserRecord]:
        with self.Session() as session:
            rows = session.execute(
                select(UserRow).order_by(UserRow.created_at.asc())
            ).scalars()
            return [self._to_user(row) for row in rows]

    def update_user(self, user_id: str, fields: dict) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            for key, value in _pick(fields, USER_FIELDS).items():
                setattr(row, key, value)
            session.commit()
            session.refresh(row)
            return self._to_user(row)

    def delete_user(self, user_id: str) -> Optional[UserRecord]:
        with self.Session() as session:
            row = session.get(UserRow, user_id)
            if not row:
                return None
            record = self._to_user(row)
            session.delete(row)
            session.commit()
            return record

    def create_product(
        self,
        name: str,
        price: float,
        stock: int = 0,
        image_url: Optional[str] = None,
    ) -> ProductRecord:
        now = time.time()
        with self.Session() as session:
            row = ProductRow(
                name=name,
                price=price,
                stock=stock,
                image_url=image_url,
                rating=0.0,
                reviews_count=0,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_product(row)

    def get_product(self, product_id: int) -> Optional[ProductRecord]:
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            return self._to_product(row) if row else None

    def list_products(self) -> list[ProductRecord]:
        with self.Session() as session:
            rows = session.execute(select(ProductRow).order_by(ProductRow.id)).scalars()
            return [self._to_product(row) for row in rows]

    def update_product_rating(
        self, product_id: int, rating: float, reviews_count: int
    ) -> None:
        with self.Session() as session:
            row = session.get(ProductRow, product_id)
            if not row:
                return
            row.rating = rating
            row.reviews_count = reviews_count
            row.updated_at = time.time()
            session.commit()

    def create_order(
        self,
        *,
        user_id: Optional[str],
        total_amount: float,
        items: Optional[list] = None,
        shipping_address: Optional[str],
        payment_method: str = "cash_on_delivery",
        notes: Optional[str] = None,
    ) -> OrderRecord:
        now = time.time()
        with self.Session() as session:
            row = OrderRow(
                order_number=f"ORD-{int(now * 1000)}",
                user_id=user_id,
                total_amount=total_amount,
                items=list(items or []),
                status="pending",
                shipping_address=shipping_address,
                payment_method=payment_method,
                payment_status="pending",
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_order(row)

    def get_order(self, order_id: int) -> Optional[OrderRecord]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            return self._to_order(row) if row else None

    def list_orders(
        self,
        status: Optional[str] = None,
        customer_email: Optional[str] = None,
    ) -> list[tuple[OrderRecord, Optional[UserRecord]]]:
        with self.Session() as session:
            stmt = (
                select(OrderRow, UserRow)
                .outerjoin(UserRow, OrderRow.user_id == UserRow.id)
                .order_by(OrderRow.created_at.desc())
            )
            if status:
                stmt = stmt.where(OrderRow.status == status)
            if customer_email:
                stmt = stmt.where(UserRow.email == customer_email)
            return [
                (self._to_order(order), self._to_user(user) if user else None)
                for order, user in session.execute(stmt).all()
            ]

    def update_order(self, order_id: int, fields: dict) -> Optional[OrderRecord]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            if not row:
                return None
            for key, value in _pick(fields, ORDER_FIELDS).items():
                setattr(row, key, value)
            row.updated_at = time.time()
            session.commit()
            session.refresh(row)
            return self._to_order(row)

    def delete_order(self, order_id: int) -> Optional[OrderRecord]:
        with self.Session() as session:
            row = session.get(OrderRow, order_id)
            if not row:
                return None
            record = self._to_order(row)
            session.delete(row)
            session.commit()
            return record

    def create_review(
        self,
        *,
        product_id: int,
        user_id: str,
        user_name: str,
        rating: int,
        comment: str,
        user_avatar: Optional[str] = None,
        verified: bool = False,
    ) -> ReviewRecord:
        now = time.time()
        with self.Session() as session:
            row = ReviewRow(
                product_id=product_id,
                user_id=user_id,
                user_name=user_name,
                rating=rating,
                comment=comment,
                user_avatar=user_avatar,
                verified=verified,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_review(row)

    def get_review(self, review_id: int) -> Optional[ReviewRecord]:
        with self.Session() as session:
            row = session.get(ReviewRow, review_id)
            return self._to_review(row) if row else None

    def find_review(self, product_id: int, user_id: str) -> Optional[ReviewRecord]:
        with self.Session() as session:
            stmt = select(ReviewRow).where(
                ReviewRow.product_id == product_id, ReviewRow.user_id == user_id
            )
            row = session.execute(stmt).scalars().first()
            return self._to_review(row) if row else None

    def list_reviews(
        self,
        *,
        product_id: Optional[int] = None,
        user_id: Optional[str] = None,
        rating: Optional[int] = None,
        verified: Optional[bool] = None,
        sort_by: str = "created_at",
        descending: bool = True,
    ) -> list[ReviewRecord]:
        column = getattr(ReviewRow, sort_by, None)
        if sort_by not in ("created_at", "updated_at", "rating", "id"):
            column = ReviewRow.created_at
        with self.Session() as session:
            stmt = select(ReviewRow).order_by(
                column.desc() if descending else column.asc()
            )
            if product_id is not None:
                stmt = stmt.where(ReviewRow.product_id == product_id)
            if user_id is not None:
                stmt = stmt.where(ReviewRow.user_id == user_id)
            if rating is not None:
                stmt = stmt.where(ReviewRow.rating == rating)
            if verified is not None:
                stmt = stmt.where(ReviewRow.verified == verified)
            return [self._to_review(row) for row in session.execute(stmt).scalars()]

    def update_review(self, review_id: int, fields: dict) -> Optional[ReviewRecord]:
        with self.Session() as session:
            row = session.get(ReviewRow, review_id)
            if not row:
                return None
            for key, value in _pick(fields, REVIEW_FIELDS).items():
                setattr(row, key, value)
            row.updated_at = time.time()
            session.commit()
            session.refresh(row)
            return self._to_review(row)

    def delete_review(self, review_id: int) -> bool:
        with self.Session() as session:
            row = session.get(ReviewRow, review_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Float, nullable=False)


class ProductRow(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    image_url = Column(String, nullable=True)
    rating = Column(Float, nullable=False, default=0.0)
    reviews_count = Column(Integer, nullable=False, default=0)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class OrderRow(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_number = Column(String, nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=True, index=True)
    total_amount = Column(Float, nullable=False)
    items = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="pending", index=True)
    shipping_address = Column(Text, nullable=True)
    payment_method = Column(String, nullable=False, default="cash_on_delivery")
    payment_status = Column(String, nullable=False, default="pending")
    shipping_date = Column(String, nullable=True)
    delivery_date = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class ReviewRow(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    user_name = Column(String, nullable=False)
    user_avatar = Column(String, nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
