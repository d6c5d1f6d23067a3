from .migrations import setupDB
from .defaults import default_list

import os
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from urllib.parse import urlparse

from retry import retry

from enum import StrEnum, auto
import sqlite3, pymysql, psycopg2
import pymysql.cursors
import psycopg2.extras

from typing import Any, Callable, ClassVar, Dict, Generator, List, Literal, Tuple, Type, TypeVar

from shopapi.utils.exceptions import ShopError, ConflictError, TransactionFailure
from shopapi.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

sqlite3.register_adapter(Decimal, str)
sqlite3.register_adapter(datetime, lambda value: value.isoformat(sep=" "))


class Backend(StrEnum):
    SQLITE = auto()
    POSTGRESQL = auto()
    MYSQL = auto()


class Transaction:
    """
    Explicit transaction handle.
    Opened by DBClient.transaction(), passed into services and threaded through
    every record call. Never commits or rolls back on its own.
    """

    def __init__(self, client: "DBClient", conn: Any, cur: Any) -> None:
        self.client = client
        self.conn = conn
        self.cur = cur

    @property
    def backend(self) -> Backend:
        return self.client.backend

    def _sql(self, query: str) -> str:
        if self.backend == Backend.SQLITE:
            return query
        return query.replace("?", "%s")

    def execute(
        self,
        query: str,
        params: tuple | list | None = None,
        fetch: Literal["all", "one", "none"] = "all",
    ) -> Any:
        self.cur.execute(self._sql(query), tuple(params or ()))
        if fetch == "all":
            return self.cur.fetchall()
        if fetch == "one":
            return self.cur.fetchone()
        return None

    def insert(self, table_name: str, data: Dict[str, Any]) -> int:
        """INSERT a row and return its primary key."""
        columns = ", ".join(data.keys())
        placeholders = ", ".join("?" for _ in data)
        query = f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders})"
        if self.backend == Backend.POSTGRESQL:
            row = self.execute(f"{query} RETURNING id", tuple(data.values()), fetch="one")
            return row["id"]
        self.execute(query, tuple(data.values()), fetch="none")
        return self.cur.lastrowid

    @property
    def rowcount(self) -> int:
        return self.cur.rowcount

    def get_columns(self, table_name: str) -> Dict[str, str]:
        return self.client.get_columns(table_name)


class DBClient:
    OperationalError: ClassVar[Tuple[Type[BaseException], ...]] = (
        sqlite3.OperationalError,
        psycopg2.OperationalError,
        pymysql.err.OperationalError
    )
    ProgrammingError: ClassVar[Tuple[Type[BaseException], ...]] = (
        sqlite3.ProgrammingError,
        psycopg2.ProgrammingError,
        pymysql.err.ProgrammingError
    )
    IntegrityError: ClassVar[Tuple[Type[BaseException], ...]] = (
        sqlite3.IntegrityError,
        psycopg2.IntegrityError,
        pymysql.err.IntegrityError
    )

    def __init__(self):
        self.uri = None
        self.backend = None
        self._row_factory = self._dict_factory
        self._columns: Dict[str, Dict[str, str]] = {}

    def init_app(self, app):
        uri = (
            app.config.get("DATABASE_URI")
            or app.config.get("DATABASE_URL")
            or os.getenv("DATABASE_URL")
        )
        if not uri:
            raise RuntimeError("No Database config found")

        if uri.startswith("sqlite:///"):
            self.backend = Backend.SQLITE
        elif uri.startswith(("postgresql://", "postgres://")):
            self.backend = Backend.POSTGRESQL
        elif uri.startswith(("mysql://", "mariadb://")):
            self.backend = Backend.MYSQL
        else:
            raise ValueError(f"Unsupported DATABASE_URI: {uri}")

        self.uri = uri
        self._columns.clear()
        app.extensions["db"] = self

    def checkDB(self, schema):
        setupDB(schema, self)
        self._columns.clear()

    def _dict_factory(self, cursor, row):
        return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}

    @retry(tries=3,
           delay=1,
           backoff=2,
           exceptions=OperationalError,
           logger=logger,
           )
    def _connect(self) -> Tuple[Any, Any]:
        """Establish connection/ cursor with timeout/retry."""
        if not self.uri:
            raise RuntimeError("DBClient not initialized. Call init_app() first.")

        if self.backend == Backend.SQLITE:
            path = self.uri.split(":///", 1)[-1] or ":memory:"
            db_path = str(Path(path).expanduser().resolve()) if path != ":memory:" else ":memory:"
            if db_path != ":memory:":
                os.makedirs(os.path.dirname(db_path), exist_ok=True)
            conn = sqlite3.connect(db_path, timeout=30, check_same_thread=False)
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA journal_mode = WAL")
            conn.row_factory = self._row_factory
            return conn, conn.cursor()

        if self.backend == Backend.POSTGRESQL:
            conn = psycopg2.connect(self.uri, connect_timeout=10)
            conn.set_session(autocommit=False)
            cur = conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            cur.execute("SET client_min_messages TO WARNING;")
            return conn, cur

        if self.backend == Backend.MYSQL:
            parsed = urlparse(self.uri)
            conn = pymysql.connect(
                host=parsed.hostname or "localhost",
                port=parsed.port or 3306,
                user=parsed.username or "",
                password=parsed.password or "",
                database=parsed.path.lstrip("/") or None,
                charset="utf8mb4",
                autocommit=False,
                connect_timeout=10,
                cursorclass=pymysql.cursors.DictCursor,
            )
            return conn, conn.cursor()

        raise ValueError(f"Unsupported Database Backend: {self.backend}")

    @staticmethod
    def _close(conn: Any, cur: Any) -> None:
        try:
            cur.close()
        except Exception:
            pass
        try:
            conn.close()
        except Exception:
            pass

    @contextmanager
    def connection(self, autocommit: bool = True) -> Generator[Tuple[Any, Any], None, None]:
        """
        Context manager for conn/cursor, used for schema work and one-off reads.
        Usage:
        with db.connection() as (conn, cur):
            cur.execute("SELECT * FROM table", params)
            results = cur.fetchall()
        """
        conn, cur = self._connect()
        try:
            yield conn, cur
            if autocommit:
                conn.commit()
        except self.OperationalError as e:
            conn.rollback()
            logger.warning("Transient DB error (will retry on next call): %s", e)
            raise
        except self.ProgrammingError as e:
            conn.rollback()
            logger.error("Database Programming error: %s", e)
            raise
        except self.IntegrityError as e:
            conn.rollback()
            logger.info("Integrity Error during DB operation: %s", e)
            raise
        except Exception as e:
            conn.rollback()
            logger.exception("Unexpected DB error: %s", e)
            raise
        finally:
            self._close(conn, cur)

    @contextmanager
    def transaction(self) -> Generator[Transaction, None, None]:
        """
        Unit of work boundary. Commits exactly once on a clean exit and rolls
        back exactly once on any exception.
        Usage:
        with db.transaction() as tx:
            order = orders.create_order(tx, ...)

        ShopErrors propagate unchanged, unique violations become ConflictError,
        anything else is wrapped in TransactionFailure.
        """
        conn, cur = self._connect()
        tx = Transaction(self, conn, cur)
        try:
            yield tx
        except ShopError:
            conn.rollback()
            raise
        except self.IntegrityError as e:
            conn.rollback()
            if self.is_duplicate(e):
                logger.info("Duplicate entry rejected: %s", e)
                raise ConflictError("Duplicate entry", cause=str(e)) from e
            logger.warning("Integrity error, transaction rolled back: %s", e)
            raise TransactionFailure(e) from e
        except Exception as e:
            conn.rollback()
            logger.exception("Transaction rolled back: %s", e)
            raise TransactionFailure(e) from e
        else:
            conn.commit()
        finally:
            self._close(conn, cur)

    def run_in_transaction(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call fn(tx, *args, **kwargs) inside a single transaction."""
        with self.transaction() as tx:
            return fn(tx, *args, **kwargs)

    def execute(
        self,
        query: str,
        params: tuple | dict | None = None,
        fetch: Literal["all", "one", "none"] = "all",
    ) -> Any:
        with self.connection() as (conn, cur):
            if self.backend != Backend.SQLITE:
                query = query.replace("?", "%s")
            cur.execute(query, params or ())
            if fetch == "all":
                return cur.fetchall()
            if fetch == "one":
                return cur.fetchone()
            return None

    def get_columns(self, table_name: str) -> Dict[str, str]:
        if table_name in self._columns:
            return self._columns[table_name]
        if self.backend == Backend.SQLITE:
            res = self.execute(f"PRAGMA table_info({table_name})", fetch="all")
            columns = {row["name"].lower(): row["type"].lower() for row in res}
        elif self.backend in (Backend.POSTGRESQL, Backend.MYSQL):
            schema_clause = "current_schema()" if self.backend == Backend.POSTGRESQL else "DATABASE()"
            sql = f"""
                SELECT column_name, data_type
                FROM information_schema.columns
                WHERE table_name = ?
                  AND table_schema = {schema_clause}
                ORDER BY ordinal_position
            """
            res = self.execute(sql, (table_name,), fetch="all")
            columns = {
                (row.get("column_name") or row.get("COLUMN_NAME")).lower():
                (row.get("data_type") or row.get("DATA_TYPE")).lower()
                for row in res
            }
        else:
            raise ValueError(f"Unsupported backend: {self.backend}")
        if columns:
            self._columns[table_name] = columns
        return columns

    @staticmethod
    def is_duplicate(exc: Exception, column: str | None = None) -> bool:
        """
        Checks if Exception is for duplicate entry error
        """
        msg = str(exc).lower()
        checks = ["unique", "duplicate"]
        if not any(c in msg for c in checks):
            return False
        if column:
            return column.lower() in msg
        return True


db = DBClient()
