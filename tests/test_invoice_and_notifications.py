import asyncio
from decimal import Decimal

from orderdesk.config.settings import Settings
from orderdesk.services.invoice_service import InvoiceService, format_currency, format_percent
from orderdesk.services.notification_service import OrderNotifier
from orderdesk.services.order_service import OrderService
from orderdesk.utils.email_utils import EmailConfig, EmailService


# ---------- Formatting ----------
def test_format_currency():
    assert format_currency(Decimal("1234.5"), "LKR") == "LKR 1,234.50"
    assert format_currency(0, "USD") == "USD 0.00"
    assert format_currency("99.999", "LKR") == "LKR 100.00"


def test_format_percent():
    assert format_percent(Decimal("5.0")) == "5%"
    assert format_percent(12.5) == "12.5%"
    assert format_percent(None) == "0%"


# ---------- Invoice ----------
def test_invoice_lists_lines_and_balance_due(db_session, make_order, seed):
    order = make_order([{"product_id": "P1", "quantity": 2}, {"product_id": "P2", "quantity": 1}])
    order_service = OrderService(db_session)
    view = order_service.build_view(seed.users["admin"], order)
    view["cheque_balance"] = Decimal("50.00")
    view["credit_balance"] = Decimal("25.00")

    html = InvoiceService(Settings(CURRENCY="LKR")).render(view, seed.customer)

    assert "Invoice #: ORD001" in html
    assert "Corner Grocers" in html
    assert "Kandy" in html
    assert "Rice 5kg" in html
    assert "Backordered Items" in html
    assert "LKR 200.00" in html
    assert "LKR 75.00" in html


def test_invoice_escapes_customer_text(db_session, make_order, seed):
    order = make_order([{"product_id": "P1", "quantity": 1}])
    view = OrderService(db_session).build_view(seed.users["admin"], order)
    view["customer_name"] = "<script>alert(1)</script>"

    html = InvoiceService(Settings()).render(view)
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html


# ---------- Notifications ----------
class CapturingEmailService(EmailService):
    def __init__(self):
        super().__init__(EmailConfig(smtp_server="localhost", smtp_port=25, username=None,
                                     password=None, sender="orders@example.com"))
        self.sent = []

    async def send_email_async(self, message):
        self.sent.append(self.prepare(message))
        return True


def test_new_order_message_goes_to_creator(make_order, seed):
    order = make_order([{"product_id": "P1", "quantity": 3}])
    email_service = CapturingEmailService()
    notifier = OrderNotifier(Settings(NOTIFICATIONS_ENABLED=True), email_service)

    message = notifier.new_order_message(seed.users["admin"], order, order.customer_name)
    assert [str(r.email) for r in message.recipients] == ["admin@example.com"]
    assert message.template_data["item_count"] == 3

    assert asyncio.run(notifier.deliver(message)) is True
    sent = email_service.sent[0]
    assert sent.subject == "New order ORD001 for Corner Grocers"
    assert "LKR 300.00" in sent.text_content


def test_no_message_when_disabled_or_unreachable(make_order, seed, db_session):
    order = make_order([{"product_id": "P1", "quantity": 1}])

    disabled = OrderNotifier(Settings(NOTIFICATIONS_ENABLED=False), CapturingEmailService())
    assert disabled.new_order_message(seed.users["admin"], order, order.customer_name) is None

    enabled = OrderNotifier(Settings(NOTIFICATIONS_ENABLED=True), CapturingEmailService())
    # the seeded driver has no e-mail address
    assert enabled.new_order_message(seed.users["driver"], order, order.customer_name) is None

    manager = seed.users["manager"]
    manager.email_notifications = False
    db_session.commit()
    assert enabled.new_order_message(manager, order, order.customer_name) is None
    assert asyncio.run(enabled.deliver(None)) is False


def test_malformed_address_gives_no_message(make_order, seed, db_session):
    order = make_order([{"product_id": "P1", "quantity": 1}])
    manager = seed.users["manager"]
    manager.email = "not-an-email"
    db_session.commit()

    notifier = OrderNotifier(Settings(NOTIFICATIONS_ENABLED=True), CapturingEmailService())
    assert notifier.new_order_message(manager, order, order.customer_name) is None
