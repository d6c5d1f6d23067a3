from . import models
from .models import (
    OrderStatus,
    User,
    RefreshToken,
    Supplier,
    Product,
    Category,
    ProductCategory,
    Customer,
    Order,
    OrderItem,
    Review,
    set_defaults,
)
