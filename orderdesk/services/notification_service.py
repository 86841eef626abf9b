from typing import Optional
from jinja2 import TemplateError
from pydantic import ValidationError

from ..config.logging import get_logger
from ..config.settings import Settings, get_settings
from ..models.order import Order
from ..models.user import User
from ..utils.email_utils import EmailConfig, EmailMessage, EmailRecipient, EmailService
from .invoice_service import format_currency

logger = get_logger(__name__)


class OrderNotifier:
    """New-order e-mails to the user who created the order.

    Building the message reads ORM state, so it happens while the request's
    session is open; delivery runs later as a background task.
    """

    def __init__(self, settings: Settings = None, email_service: EmailService = None):
        self.settings = settings or get_settings()
        self.email_service = email_service or EmailService(EmailConfig.from_settings(self.settings))

    def new_order_message(self, acting_user: User, order: Order, customer_name: str) -> Optional[EmailMessage]:
        """Rendered message for the creator, or ``None`` when nothing should be sent."""
        if not self.settings.NOTIFICATIONS_ENABLED:
            return None
        if not acting_user.email or not acting_user.email_notifications:
            logger.debug(f"User {acting_user.id} has no e-mail or opted out; no notification for {order.id}")
            return None

        item_count = sum(int(item.get("quantity") or 0) for item in order.order_items or [])
        try:
            message = EmailMessage(
                recipients=[EmailRecipient(email=acting_user.email, name=acting_user.name)],
                template_name="new_order",
                template_data={
                    "order_id": order.id,
                    "customer_name": customer_name,
                    "total": format_currency(order.total_amount, self.settings.CURRENCY),
                    "item_count": item_count,
                    "expected_delivery": (
                        order.expected_delivery_date.isoformat() if order.expected_delivery_date else "Not set"
                    ),
                    "user_name": acting_user.name,
                }
            )
            return self.email_service.prepare(message)
        except (ValidationError, TemplateError, ValueError) as e:
            # the order is already saved; a bad address or template only loses the e-mail
            logger.warning(f"New-order notification for {order.id} not prepared: {e}")
            return None

    async def deliver(self, message: Optional[EmailMessage]) -> bool:
        """Send a prepared message; never raises for SMTP trouble."""
        if message is None:
            return False
        sent = await self.email_service.send_email_async(message)
        if not sent:
            logger.warning(f"New-order notification '{message.template_data.get('order_id')}' was not delivered")
        return sent
