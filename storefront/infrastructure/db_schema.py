import uuid

from sqlalchemy import (
    DECIMAL,
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Table,
    Text,
    Uuid,
    func,
)

metadata = MetaData()

orders_tbl = Table(
    "orders",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    Column("user_id", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("total_price", DECIMAL(10, 2), nullable=False),
    Column("status", Text, nullable=False, index=True),
    Column("created_at", DateTime, server_default=func.now(), index=True),
    Column("updated_at", DateTime, server_default=func.now()),
)

order_statuses_tbl = Table(
    "order_statuses",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("order_id", Uuid(as_uuid=True), ForeignKey("orders.id"), index=True),
    Column("status", Text, nullable=False),
    Column("created_at", DateTime, server_default=func.now()),
)

order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    Column("order_id", Uuid(as_uuid=True), ForeignKey("orders.id"), index=True),
    Column("position", Integer, nullable=False),
    Column("product_id", Text, nullable=False),
    Column("name", Text, nullable=False),
    Column("price", DECIMAL(10, 2), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("status", Text, nullable=False),
)

payments_tbl = Table(
    "payments",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    Column("order_id", Uuid(as_uuid=True), ForeignKey("orders.id"), index=True),
    Column("user_id", Text, nullable=False),
    Column("amount", DECIMAL(10, 2), nullable=False),
    Column("method", Text, nullable=False),
    Column("status", Text, nullable=False, index=True),
    Column("transaction_id", Text, nullable=True),
    Column("paid_at", DateTime, nullable=True),
    Column("reason", Text, nullable=True),
    Column("created_at", DateTime, server_default=func.now()),
)

shipping_infos_tbl = Table(
    "shipping_infos",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    Column(
        "order_item_id",
        Uuid(as_uuid=True),
        ForeignKey("order_items.id"),
        index=True,
    ),
    Column("carrier", Text, nullable=False),
    Column("tracking_number", Text, nullable=False, index=True),
    Column("area", Text, nullable=True),
    Column("status", Text, nullable=False),
    Column("created_at", DateTime, server_default=func.now()),
    Column("updated_at", DateTime, server_default=func.now()),
)

outbox_tbl = Table(
    "outbox",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    Column("event_type", Text, nullable=False),
    Column("payload", JSON, nullable=False),
    Column("status", Text, nullable=False),
    Column("error", Text, nullable=True),
    Column("created_at", DateTime, server_default=func.now()),
)
