#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from schoolshop.data.models.category import CategoryModel
from schoolshop.data.models.product import ProductModel
from schoolshop.data.models.order import OrderModel
from schoolshop.data.models.order_item import OrderItemModel
from schoolshop.data.models.admin_user import AdminUserModel

__all__ = ["CategoryModel", "ProductModel", "OrderModel", "OrderItemModel", "AdminUserModel"]
