"""SQLAlchemy tables backing sales orders."""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

sales_orders = Table(
    "sales_orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("public_id", String(64), nullable=False, unique=True),
    Column("so_num", String(30), nullable=False, unique=True),
    Column("customer_id", String(64), nullable=False, index=True),
    Column("order_date", Date),
    Column("request_date", Date),
    Column("need_by_date", Date),
    Column("order_status", String(20), nullable=False, index=True),
    Column("header_discount_amount", Float, nullable=False, default=0.0),
    Column("header_discount_percent", Float, nullable=False, default=0.0),
    Column("total_line_amount", Float, nullable=False, default=0.0),
    Column("total_discount", Float, nullable=False, default=0.0),
    Column("total_tax", Float, nullable=False, default=0.0),
    Column("total_charges", Float, nullable=False, default=0.0),
    Column("order_total", Float, nullable=False, default=0.0),
    Column("open_amount", Float, nullable=False, default=0.0),
    Column("billing_address_id", String(64)),
    Column("shipping_address_id", String(64)),
    Column("channel", String(50)),
    Column("fob_code", String(20)),
    Column("ship_via_code", String(20)),
    Column("payment_term_code", String(20)),
    Column("currency_code", String(3)),
    Column("customer_po_num", String(50)),
    Column("header_note", Text),
    Column("internal_note", Text),
    Column("created_by", String(100)),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

sales_order_lines = Table(
    "sales_order_lines",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("public_id", String(64), nullable=False, unique=True),
    Column("sales_order_id", Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("line_num", Integer, nullable=False),
    Column("item_sku_id", String(64), nullable=False),
    Column("description", String(500)),
    Column("order_qty", Float, nullable=False),
    Column("shipped_qty", Float, nullable=False, default=0.0),
    Column("uom_code", String(20), nullable=False),
    Column("unit_price", Float, nullable=False, default=0.0),
    Column("discount_percent", Float, nullable=False, default=0.0),
    Column("discount_amount", Float, nullable=False, default=0.0),
    Column("tax_percent", Float, nullable=False, default=0.0),
    Column("tax_amount", Float, nullable=False, default=0.0),
    Column("total_amount", Float, nullable=False, default=0.0),
    Column("need_by_date", Date),
    Column("status", String(20), nullable=False),
    Column("warehouse_code", String(50)),
    Column("line_note", Text),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    UniqueConstraint("sales_order_id", "line_num", name="uq_sales_order_lines_order_line_num"),
)

# Columns never rewritten by an update; identity and ownership are fixed at insert.
LINE_IMMUTABLE_COLUMNS = frozenset({"id", "public_id", "sales_order_id", "created_at"})
HEADER_IMMUTABLE_COLUMNS = frozenset({"id", "public_id", "created_at"})
