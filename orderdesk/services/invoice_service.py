"""
HTML invoice rendering for a single order.
"""
from decimal import Decimal
from typing import Any, Dict, Optional
from jinja2 import Environment, StrictUndefined

from ..config.settings import Settings, get_settings
from ..domain.lines import money
from ..utils.date_utils import DateUtils

INVOICE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Invoice {{ order.id }}</title>
    <style>
        body { font-family: Arial, sans-serif; color: #333; margin: 40px; }
        .header { display: flex; justify-content: space-between; border-bottom: 2px solid #1d4ed8; padding-bottom: 16px; }
        .company h1 { margin: 0; color: #1d4ed8; }
        .meta { text-align: right; }
        .bill-to { margin: 24px 0; }
        table { width: 100%; border-collapse: collapse; margin-bottom: 24px; }
        th, td { border-bottom: 1px solid #ddd; padding: 8px; text-align: left; }
        td.num, th.num { text-align: right; }
        .totals { width: 320px; margin-left: auto; }
        .totals td { border: none; padding: 4px 8px; }
        .due { font-weight: bold; font-size: 1.1em; border-top: 2px solid #333; }
    </style>
</head>
<body>
    <div class="header">
        <div class="company">
            <h1>{{ company.name }}</h1>
            <div>{{ company.address }}</div>
            <div>{{ company.email }} | {{ company.phone }}</div>
        </div>
        <div class="meta">
            <h2>INVOICE</h2>
            <div>Invoice #: {{ order.id }}</div>
            <div>Date: {{ order_date }}</div>
            <div>Status: {{ order.status }}</div>
            {% if expected_delivery %}<div>Expected delivery: {{ expected_delivery }}</div>{% endif %}
        </div>
    </div>

    <div class="bill-to">
        <h3>Bill To</h3>
        <div><strong>{{ order.customer_name }}</strong></div>
        {% if customer %}
        {% if customer.location %}<div>{{ customer.location }}</div>{% endif %}
        {% if customer.phone %}<div>{{ customer.phone }}</div>{% endif %}
        {% if customer.email %}<div>{{ customer.email }}</div>{% endif %}
        {% endif %}
    </div>

    <table>
        <thead>
            <tr><th>Item</th><th class="num">Qty</th><th class="num">Price</th><th class="num">Discount</th><th class="num">Subtotal</th></tr>
        </thead>
        <tbody>
            {% for item in order["items"] %}
            <tr>
                <td>{{ item.name }}</td>
                <td class="num">{{ item.quantity }}</td>
                <td class="num">{{ item.price | currency }}</td>
                <td class="num">{{ item.discount | percent }}</td>
                <td class="num">{{ item.subtotal | currency }}</td>
            </tr>
            {% endfor %}
        </tbody>
    </table>

    {% if order.backordered_items %}
    <h3>Backordered Items</h3>
    <table>
        <thead>
            <tr><th>Item</th><th class="num">Qty</th><th class="num">Price</th></tr>
        </thead>
        <tbody>
            {% for item in order.backordered_items %}
            <tr>
                <td>{{ item.name }}</td>
                <td class="num">{{ item.quantity }}</td>
                <td class="num">{{ item.price | currency }}</td>
            </tr>
            {% endfor %}
        </tbody>
    </table>
    {% endif %}

    <table class="totals">
        <tr><td>Total items</td><td class="num">{{ order.item_count }}</td></tr>
        <tr><td>Grand total</td><td class="num">{{ order.total | currency }}</td></tr>
        <tr><td>Amount paid</td><td class="num">{{ order.amount_paid | currency }}</td></tr>
        <tr><td>Pending cheque</td><td class="num">{{ order.cheque_balance | currency }}</td></tr>
        <tr><td>Credit balance</td><td class="num">{{ order.credit_balance | currency }}</td></tr>
        <tr class="due"><td>Balance due</td><td class="num">{{ balance_due | currency }}</td></tr>
    </table>
</body>
</html>
"""


def format_currency(amount: Any, currency: Optional[str] = None) -> str:
    """``LKR 1,234.50`` style amounts."""
    currency = currency or get_settings().CURRENCY
    return f"{currency} {money(amount):,.2f}"


def format_percent(value: Any) -> str:
    value = Decimal(str(value or 0))
    return f"{value.normalize():f}%"


class InvoiceService:
    def __init__(self, settings: Settings = None):
        self.settings = settings or get_settings()
        self.env = Environment(autoescape=True, undefined=StrictUndefined)
        self.env.filters["currency"] = lambda amount: format_currency(amount, self.settings.CURRENCY)
        self.env.filters["percent"] = format_percent
        self.template = self.env.from_string(INVOICE_TEMPLATE)

    def render(self, order_view: Dict[str, Any], customer: Any = None) -> str:
        """Render an order view model (see OrderService.build_view) as HTML."""
        balance_due = order_view["cheque_balance"] + order_view["credit_balance"]
        return self.template.render(
            order=order_view,
            customer=customer,
            company={
                "name": self.settings.COMPANY_NAME,
                "address": self.settings.COMPANY_ADDRESS,
                "email": self.settings.COMPANY_EMAIL,
                "phone": self.settings.COMPANY_PHONE,
            },
            order_date=DateUtils.format_for_display(order_view["order_date"]),
            expected_delivery=DateUtils.format_for_display(order_view["expected_delivery_date"]),
            balance_due=balance_due,
        )
