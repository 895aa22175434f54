"""Change-tracked store for SalesOrder aggregates.

Saving an existing order never rewrites untouched lines: lines are split by
row mode into one DELETE for removed rows, one UPDATE per changed row and one
batched INSERT for new rows, all inside a single transaction together with
the header update.
"""

from contextlib import contextmanager
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError
from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine

from sales.order.order import SalesOrder
from sales.persistence.sync import LineChangeSet
from sales.persistence.tables import (
    HEADER_IMMUTABLE_COLUMNS,
    LINE_IMMUTABLE_COLUMNS,
    sales_order_lines,
    sales_orders,
)
from sales.utils.db import create_sales_engine
from sales.utils.settings import database_uri

logger = structlog.get_logger(__name__)


class SalesOrderRepository:
    def __init__(self, engine: Engine, connection: Connection | None = None):
        self._engine = engine
        self._connection = connection

    @classmethod
    def from_uri(cls, uri: str) -> "SalesOrderRepository":
        return cls(create_sales_engine(uri))

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def in_transaction(self) -> bool:
        return self._connection is not None

    # -------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------
    def transaction(self, callback):
        """Run ``callback(repository)`` in one transaction and return its result.

        The transaction commits when the callback returns and rolls back when
        it raises. Nested calls join the transaction already in progress.
        """
        if self._connection is not None:
            return callback(self)

        with self._engine.begin() as connection:
            return callback(type(self)(self._engine, connection))

    @contextmanager
    def _connect(self):
        if self._connection is not None:
            yield self._connection
        else:
            with self._engine.connect() as connection:
                yield connection

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def find_one(self, record_id: int) -> SalesOrder | None:
        with self._connect() as connection:
            return self._load(connection, sales_orders.c.id == record_id)

    def find_by_so_num(self, so_num: str) -> SalesOrder | None:
        with self._connect() as connection:
            return self._load(connection, sales_orders.c.so_num == so_num)

    def find_by_public_id(self, public_id: str) -> SalesOrder | None:
        with self._connect() as connection:
            return self._load(connection, sales_orders.c.public_id == str(public_id))

    def get(self, public_id: str) -> SalesOrder:
        order = self.find_by_public_id(public_id)
        if order is None:
            raise ObjectNotFoundError(f"Sales order {public_id} does not exist")
        return order

    def find_all(self, status: str | None = None, customer_id: str | None = None) -> list[SalesOrder]:
        query = select(sales_orders.c.id).order_by(sales_orders.c.so_num)
        if status:
            query = query.where(sales_orders.c.order_status == status)
        if customer_id:
            query = query.where(sales_orders.c.customer_id == str(customer_id))

        with self._connect() as connection:
            ids = connection.execute(query).scalars().all()
            return [self._load(connection, sales_orders.c.id == record_id) for record_id in ids]

    def last_number_with_prefix(self, prefix: str) -> str | None:
        query = (
            select(sales_orders.c.so_num)
            .where(sales_orders.c.so_num.like(f"{prefix}%"))
            .order_by(sales_orders.c.so_num.desc())
            .limit(1)
        )
        with self._connect() as connection:
            return connection.execute(query).scalar()

    def status_summary(self) -> dict[str, dict]:
        """Order count and open amount per status."""
        query = select(
            sales_orders.c.order_status,
            func.count(sales_orders.c.id),
            func.coalesce(func.sum(sales_orders.c.open_amount), 0.0),
        ).group_by(sales_orders.c.order_status)

        with self._connect() as connection:
            return {
                status: {"count": count, "open_amount": float(open_amount)}
                for status, count, open_amount in connection.execute(query)
            }

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def create(self, order: SalesOrder) -> SalesOrder:
        """Insert a new order with its lines; returns the stored aggregate."""

        def _write(repository):
            connection = repository._connection
            values = _header_values(order)
            values["public_id"] = str(order.id)
            values["created_at"] = order.created_at or datetime.now(UTC)
            result = connection.execute(insert(sales_orders).values(**values))
            record_id = result.inserted_primary_key[0]

            rows = [_new_line_values(line, record_id) for line in order.lines]
            if rows:
                connection.execute(insert(sales_order_lines), rows)

            return repository._load(connection, sales_orders.c.id == record_id)

        saved = self.transaction(_write)
        logger.info(
            "Sales order stored",
            record_id=saved.record_id,
            so_num=saved.so_num,
            line_count=len(saved.lines),
        )
        return saved

    def update(self, record_id: int, order: SalesOrder) -> SalesOrder:
        """Write the header and only the changed lines; returns the reloaded aggregate."""
        changes = LineChangeSet.from_lines(order.lines_for_persistence())

        def _write(repository):
            connection = repository._connection
            values = _header_values(order)
            result = connection.execute(
                update(sales_orders).where(sales_orders.c.id == record_id).values(**values)
            )
            if result.rowcount == 0:
                raise ObjectNotFoundError(f"Sales order with id {record_id} does not exist")

            if changes.deleted_ids:
                connection.execute(delete(sales_order_lines).where(sales_order_lines.c.id.in_(changes.deleted_ids)))

            for line in changes.updated:
                connection.execute(
                    update(sales_order_lines)
                    .where(sales_order_lines.c.id == line.record_id)
                    .where(sales_order_lines.c.sales_order_id == record_id)
                    .values(**_changed_line_values(line))
                )

            if changes.created:
                connection.execute(
                    insert(sales_order_lines),
                    [_new_line_values(line, record_id) for line in changes.created],
                )

            return repository._load(connection, sales_orders.c.id == record_id)

        saved = self.transaction(_write)
        logger.info("Sales order lines synchronized", record_id=record_id, so_num=saved.so_num, **changes.summary())
        return saved

    def delete(self, record_id: int) -> bool:
        def _write(repository):
            connection = repository._connection
            connection.execute(delete(sales_order_lines).where(sales_order_lines.c.sales_order_id == record_id))
            result = connection.execute(delete(sales_orders).where(sales_orders.c.id == record_id))
            return result.rowcount > 0

        deleted = self.transaction(_write)
        if deleted:
            logger.info("Sales order deleted", record_id=record_id)
        else:
            logger.warning("Sales order to delete not found", record_id=record_id)
        return deleted

    # -------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------
    def _load(self, connection: Connection, condition) -> SalesOrder | None:
        header = connection.execute(select(sales_orders).where(condition)).mappings().first()
        if header is None:
            return None

        lines = (
            connection.execute(
                select(sales_order_lines)
                .where(sales_order_lines.c.sales_order_id == header["id"])
                .order_by(sales_order_lines.c.line_num)
            )
            .mappings()
            .all()
        )
        record = dict(header)
        record["lines"] = [dict(line) for line in lines]
        return SalesOrder.from_persistence(record)


def _header_values(order: SalesOrder) -> dict:
    values = order.to_persistence()
    values.pop("lines")
    values["updated_at"] = datetime.now(UTC)
    return {name: value for name, value in values.items() if name not in HEADER_IMMUTABLE_COLUMNS}


def _new_line_values(line, record_id: int) -> dict:
    values = line.to_persistence()
    values.pop("id")
    values["sales_order_id"] = record_id
    values["created_at"] = values.get("created_at") or datetime.now(UTC)
    values["updated_at"] = values.get("updated_at") or values["created_at"]
    return values


def _changed_line_values(line) -> dict:
    values = line.to_persistence()
    values["updated_at"] = datetime.now(UTC)
    return {name: value for name, value in values.items() if name not in LINE_IMMUTABLE_COLUMNS}


_repository: SalesOrderRepository | None = None


def order_repository() -> SalesOrderRepository:
    """The store used by the application handlers, built from settings on first use."""
    global _repository
    if _repository is None:
        _repository = SalesOrderRepository.from_uri(database_uri())
    return _repository


def use_order_repository(repository: SalesOrderRepository | None) -> None:
    global _repository
    _repository = repository
