# Import SQLAlchemy models so they register on Base.metadata
from foodcourt.models.admin import Admin  # noqa: F401
from foodcourt.models.buyer_session import BuyerSession, CartItem  # noqa: F401
from foodcourt.models.menu import Menu, MenuCategory  # noqa: F401
from foodcourt.models.merchant import Merchant  # noqa: F401
from foodcourt.models.order import Order, OrderItem, OrderStatus  # noqa: F401
from foodcourt.models.payment import OrderPayment, OrderPaymentItem, PaymentStatus  # noqa: F401
