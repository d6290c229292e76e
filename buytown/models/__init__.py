from buytown.models.user import User
from buytown.models.product import Product, ProductVariation
from buytown.models.cart import Cart, CartItem
from buytown.models.vehicle import Vehicle, UserVehicle
from buytown.models.order_item import OrderItem
from buytown.models.order import Order
from buytown.models.order_sequence import OrderSequence
from buytown.models.order_event import OrderEvent
from buytown.models.payment import Payment, PaymentLog, PaymentRefund
from buytown.models.tax import TaxConfiguration
from buytown.models.notifications import Notification

# add ALL models here
