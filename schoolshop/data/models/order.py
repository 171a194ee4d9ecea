from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from schoolshop.data.database import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String, nullable=False, unique=True, index=True)
    session_id = Column(String, nullable=False, index=True)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    notes = Column(String, nullable=True)

    status = Column(String, nullable=False, default="pending")  # pending, processing, cancelled
    payment_status = Column(String, nullable=False, default="pending", index=True)  # pending, paid, failed
    payment_proof = Column(String, nullable=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    paid_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItemModel.id",
    )
