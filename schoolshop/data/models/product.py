#schoolshop/data/models/product.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Numeric, Boolean, DateTime
from sqlalchemy.orm import relationship

from schoolshop.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    sku = Column(String, nullable=True, unique=True)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    image = Column(String, nullable=True)  # sciezka w file storage
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    category = relationship("CategoryModel", back_populates="products")
