# Emails
from commerce.models.emails.email_models import Email

# Orders
from commerce.models.orders.order_status_models import OrderStatus, OrderStatusEmail
from commerce.models.orders.order_models import Order, OrderHistory
