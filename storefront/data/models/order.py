from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, Numeric, String
from sqlalchemy.orm import relationship

from storefront.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(Integer, nullable=False, unique=True)
    order_code = Column(String(32), nullable=False, unique=True)
    user_id = Column(String, nullable=False, index=True)

    status = Column(String, nullable=False, default="pending")  # pending, processing, shipped, delivered
    total = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String, nullable=False)
    shipping_address = Column(JSON, nullable=False)
    billing_address = Column(JSON, nullable=False)

    order_date = Column(DateTime(timezone=True), nullable=False, default=_now)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)
    #pola realizacji, zmieniane poza silnikiem
    tracking_number = Column(String, nullable=True)
    actual_delivery = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
