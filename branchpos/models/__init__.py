"""Models package - exports all SQLAlchemy models."""
# Core Models
from branchpos.models.app_user import AppUser
from branchpos.models.business import Business

# Business Models
from branchpos.models.branch import Branch
from branchpos.models.employee import Employee
from branchpos.models.product import Product
from branchpos.models.order import Order, PaymentMethod, normalize_payment_method
from branchpos.models.order_line import OrderLine

__all__ = [
    # Core
    'AppUser', 'Business',
    # Business
    'Branch', 'Employee', 'Product',
    'Order', 'OrderLine', 'PaymentMethod', 'normalize_payment_method',
]
