from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship

from schoolshop.data.database import Base


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    products = relationship("ProductModel", back_populates="category")
