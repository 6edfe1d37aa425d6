# Importing the package registers every table on Base.metadata
from models.users import User
from models.category import Category
from models.product import Product
from models.cart import Cart, CartItem
from models.order import Order, OrderLine
from models.setting import Setting
from models.log import AuditLog

__all__ = ["User", "Category", "Product", "Cart", "CartItem", "Order", "OrderLine", "Setting", "AuditLog"]
