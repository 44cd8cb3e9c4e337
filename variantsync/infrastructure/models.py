"""SQLAlchemy models for database tables.

Provides ORM models for purchase order line items and product code
reservations.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)

from variantsync.infrastructure.database import Base


class PurchaseOrderItemModel(Base):
    """Purchase order line item.

    One row per ``(order_id, position)``. The sync columns mirror the
    line item's sync state machine.
    """

    __tablename__ = "purchase_order_items"
    __table_args__ = (
        UniqueConstraint("order_id", "position", name="uq_purchase_order_items_position"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    order_id = Column(String(64), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_code = Column(String(64), nullable=False, index=True)
    base_product_code = Column(String(64), nullable=False, index=True)
    product_name = Column(String(500), nullable=False)
    variant_text = Column(String(500), nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=1)
    purchase_price = Column(Numeric(14, 2), nullable=False, default=0)
    selling_price = Column(Numeric(14, 2), nullable=False, default=0)
    images = Column(JSON, nullable=False, default=list)
    selected_attribute_value_ids = Column(JSON, nullable=False, default=list)

    # Remote catalog
    remote_product_id = Column(Integer, nullable=True)
    remote_template_id = Column(Integer, nullable=True)

    # Sync state
    sync_status = Column(String(20), nullable=False, default="pending_no_match", index=True)
    sync_error = Column(Text, nullable=True)
    sync_started_at = Column(DateTime(timezone=True), nullable=True)
    sync_completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class ProductCodeReservationModel(Base):
    """Short-lived claim on a product code, shared by all editing sessions.

    The code is the primary key, so two owners can never hold a row for
    the same code at once.
    """

    __tablename__ = "product_code_reservations"

    product_code = Column(String(64), primary_key=True)
    owner_id = Column(String(128), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
