from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any, Dict, List, Optional, Sequence, Type, TypeVar

import bcrypt

from shopapi.database import Transaction
from shopapi.utils.helpers import utcnow, to_money, to_datetime
from shopapi.utils.logging import get_logger

log = get_logger(__name__)

R = TypeVar("R", bound="BaseClass")


class OrderStatus(StrEnum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"

    @classmethod
    def terminal(cls) -> tuple["OrderStatus", ...]:
        return (cls.DELIVERED, cls.CANCELLED)


def set_defaults(tx: Transaction, default_list: List[Dict[str, Any]]) -> bool:
    classes: Dict[str, Type[BaseClass]] = {
        "USER": User,
        "PRODUCT": Product,
        "CATEGORY": Category,
        "SUPPLIER": Supplier,
        "CUSTOMER": Customer,
    }
    try:
        for entry in default_list:
            if entry["type"] in ["NOT NULL", "NOT_NULL"]:
                cls_ = classes[entry["object_name"]]
                if cls_.get(tx, **{entry["key"]: entry["value"]}):
                    continue
                log.info("Setting default %s for %s", entry["object_name"], entry["value"])
                object_data = entry["data"].copy()
                object_data[entry["key"]] = entry["value"]
                cls_.new(tx, **object_data)
    except (KeyError, ValueError) as e:
        log.error("Failed loading defaults, %s", e)
        raise ValueError(f"Failed loading defaults, {e}") from e
    return True


class BaseClass:
    non_update: List[str] = []
    table_name: Optional[str] = None
    decimal_fields: List[str] = []
    bool_fields: List[str] = []
    datetime_fields: List[str] = ["created_at", "updated_at"]

    def __init__(self, **kwargs: Any) -> None:
        if self.table_name is None:
            raise ValueError("table_name must be set in subclass")
        for key, value in kwargs.items():
            if value is not None:
                if key in self.decimal_fields:
                    value = to_money(value)
                elif key in self.bool_fields:
                    value = bool(value)
                elif key in self.datetime_fields:
                    value = to_datetime(value)
            setattr(self, key, value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={getattr(self, 'id', None)}>"

    def __eq__(self, other: Any) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return getattr(self, "id", None) == getattr(other, "id", None)

    def __hash__(self) -> int:
        return hash((type(self).__name__, getattr(self, "id", None)))

    @classmethod
    def _checked(cls, tx: Transaction, keys: Sequence[str]) -> None:
        table_columns = tx.get_columns(cls.table_name)
        excess = [col for col in keys if col not in table_columns]
        if excess:
            raise KeyError(f"Unknown columns for {cls.table_name}: {', '.join(excess)}")

    @classmethod
    def new(cls: Type[R], tx: Transaction, **kwargs: Any) -> R:
        if "id" in kwargs:
            raise KeyError("Invalid ID key found")
        if cls.table_name is None:
            raise ValueError("table_name must be set in subclass")
        cls._checked(tx, list(kwargs))
        table_columns = tx.get_columns(cls.table_name)
        now = utcnow()
        for stamp in ("created_at", "updated_at"):
            if stamp in table_columns and kwargs.get(stamp) is None:
                kwargs[stamp] = now

        last_id = tx.insert(cls.table_name, kwargs)
        created = cls.find(tx, last_id)
        if created is None:
            raise LookupError(f"Inserted row {last_id} missing from {cls.table_name}")
        return created

    @classmethod
    def select(
        cls: Type[R],
        tx: Transaction,
        where: str | None = None,
        params: Sequence[Any] = (),
        order_by: str = "id",
    ) -> List[R]:
        """Query with a raw predicate; `where` uses ? placeholders."""
        query = f"SELECT * FROM {cls.table_name}"
        if where:
            query += f" WHERE {where}"
        query += f" ORDER BY {order_by}"
        data = tx.execute(query, tuple(params))
        if not data:
            return []
        return [cls(**entry) for entry in data]

    @classmethod
    def get(cls: Type[R], tx: Transaction, order_by: str = "id", **kwargs: Any) -> List[R]:
        """Equality filter over columns; None matches NULL."""
        if not kwargs:
            return cls.select(tx, order_by=order_by)
        cls._checked(tx, list(kwargs))
        clauses = [f"{key} IS NULL" if value is None else f"{key} = ?" for key, value in kwargs.items()]
        params = [value for value in kwargs.values() if value is not None]
        return cls.select(tx, " AND ".join(clauses), params, order_by=order_by)

    @classmethod
    def first(cls: Type[R], tx: Transaction, **kwargs: Any) -> Optional[R]:
        found = cls.get(tx, **kwargs)
        return found[0] if found else None

    @classmethod
    def find(cls: Type[R], tx: Transaction, record_id: int) -> Optional[R]:
        row = tx.execute(f"SELECT * FROM {cls.table_name} WHERE id = ?", (record_id,), fetch="one")
        return cls(**row) if row else None

    @classmethod
    def count(cls, tx: Transaction, where: str | None = None, params: Sequence[Any] = ()) -> int:
        query = f"SELECT COUNT(*) AS total FROM {cls.table_name}"
        if where:
            query += f" WHERE {where}"
        row = tx.execute(query, tuple(params), fetch="one")
        return int(row["total"])

    def update(self, tx: Transaction, *keys: str) -> bool:
        table_columns = tx.get_columns(self.table_name)
        update_data: Dict[str, Any] = {}
        if not keys:
            update_data = {
                k: v for k, v in vars(self).items()
                if k not in self.non_update and k in table_columns
            }
        else:
            invalid = [k for k in keys if k in self.non_update or k not in vars(self) or k not in table_columns]
            if invalid:
                raise KeyError(f"Invalid keys for update: {', '.join(invalid)}")
            update_data = {k: getattr(self, k) for k in keys}
        if not update_data:
            log.info("Nothing updated to %s", self.table_name)
            return True
        if "updated_at" in table_columns:
            self.updated_at = utcnow()
            update_data["updated_at"] = self.updated_at
        set_clause = ", ".join(f"{k} = ?" for k in update_data)
        params = tuple(update_data.values()) + (getattr(self, 'id'),)
        tx.execute(f"UPDATE {self.table_name} SET {set_clause} WHERE id = ?", params, fetch="none")
        return tx.rowcount > 0

    def touch(self, tx: Transaction) -> None:
        """Bump updated_at only."""
        self.updated_at = utcnow()
        tx.execute(
            f"UPDATE {self.table_name} SET updated_at = ? WHERE id = ?",
            (self.updated_at, getattr(self, 'id')),
            fetch="none",
        )

    def delete(self, tx: Transaction) -> None:
        tx.execute(f"DELETE FROM {self.table_name} WHERE id = ?", (getattr(self, 'id'),), fetch="none")

    def data(self) -> Dict[str, Any]:
        """Plain, JSON friendly dict of public attributes."""
        out: Dict[str, Any] = {}
        for key, value in vars(self).items():
            if key.startswith("_"):
                continue
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, BaseClass):
                value = value.data()
            elif isinstance(value, list):
                value = [v.data() if isinstance(v, BaseClass) else v for v in value]
            out[key] = value
        return out


class User(BaseClass):
    table_name = "user_table"
    non_update = ["id", "username", "created_at", "updated_at"]
    bool_fields = ["active"]

    @staticmethod
    def hash_password(password: str) -> str:
        return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')

    def check_password(self, input_password: str) -> bool:
        try:
            return bcrypt.checkpw(input_password.encode('utf-8'), self.password_hash.encode('utf-8'))
        except ValueError:
            log.warning("Malformed password hash for user %s", self.id)
            return False

    def update_password(self, tx: Transaction, old_password: str, new_password: str) -> bool:
        if not self.check_password(old_password):
            return False
        self.password_hash = self.hash_password(new_password)
        self.update(tx, "password_hash")
        return True

    def data(self) -> Dict[str, Any]:
        out = super().data()
        out.pop("password_hash", None)
        return out


class RefreshToken(BaseClass):
    table_name = "refresh_token_table"
    non_update = ["id", "token", "user_id", "created_at", "expires"]
    bool_fields = ["active"]
    datetime_fields = ["created_at", "expires", "revoked_at"]

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires <= (now or utcnow())

    def revoke(self, tx: Transaction) -> bool:
        """Deactivate if still active. False when another caller got there first."""
        revoked_at = utcnow()
        tx.execute(
            f"UPDATE {self.table_name} SET active = ?, revoked_at = ? WHERE id = ? AND active = ?",
            (False, revoked_at, self.id, True),
            fetch="none",
        )
        if tx.rowcount == 0:
            return False
        self.active = False
        self.revoked_at = revoked_at
        return True


class Supplier(BaseClass):
    table_name = "supplier_table"
    non_update = ["id", "created_at", "updated_at"]
    bool_fields = ["active"]

    def get_products(self, tx: Transaction) -> List["Product"]:
        return Product.get(tx, supplier_id=self.id)


class Product(BaseClass):
    table_name = "product_table"
    non_update = ["id", "created_at", "updated_at"]
    decimal_fields = ["price"]
    bool_fields = ["active"]

    def get_supplier(self, tx: Transaction) -> Optional[Supplier]:
        return Supplier.find(tx, self.supplier_id)

    def get_categories(self, tx: Transaction) -> List["Category"]:
        return Category.select(
            tx,
            "id IN (SELECT category_id FROM product_category WHERE product_id = ?)",
            (self.id,),
            order_by="name",
        )

    def set_categories(self, tx: Transaction, category_ids: Sequence[int]) -> None:
        """Replace category links with the given ids."""
        tx.execute("DELETE FROM product_category WHERE product_id = ?", (self.id,), fetch="none")
        for category_id in dict.fromkeys(category_ids):
            ProductCategory.new(tx, product_id=self.id, category_id=category_id)


class Category(BaseClass):
    table_name = "category_table"
    non_update = ["id", "created_at", "updated_at"]


class ProductCategory(BaseClass):
    table_name = "product_category"
    non_update = ["id", "product_id", "category_id", "created_at"]
    datetime_fields = ["created_at"]


class Customer(BaseClass):
    table_name = "customer_table"
    non_update = ["id", "created_at", "updated_at"]
    bool_fields = ["active"]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()


class Order(BaseClass):
    table_name = "order_table"
    non_update = ["id", "order_number", "customer_id", "order_date", "created_at", "updated_at"]
    decimal_fields = ["total_amount", "tax_amount", "shipping_cost"]
    datetime_fields = ["order_date", "created_at", "updated_at"]

    @property
    def is_terminal(self) -> bool:
        return self.status in OrderStatus.terminal()

    def get_items(self, tx: Transaction) -> List["OrderItem"]:
        return OrderItem.get(tx, order_id=self.id)

    def get_customer(self, tx: Transaction) -> Optional[Customer]:
        return Customer.find(tx, self.customer_id)


class OrderItem(BaseClass):
    table_name = "order_item_table"
    non_update = ["id", "order_id", "product_id", "quantity", "unit_price", "total_price", "created_at"]
    decimal_fields = ["unit_price", "total_price"]
    datetime_fields = ["created_at"]


class Review(BaseClass):
    table_name = "review_table"
    non_update = ["id", "product_id", "customer_id", "created_at", "updated_at"]
    bool_fields = ["approved"]
