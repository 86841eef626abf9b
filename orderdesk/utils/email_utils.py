"""
Email utility functions for the order desk.
Handles email templates and asynchronous SMTP delivery.
"""
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import List, Dict, Optional, Any
from dataclasses import dataclass
import logging
from jinja2 import Environment, StrictUndefined
import aiosmtplib
from pydantic import BaseModel, EmailStr

from ..config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class EmailConfig:
    """Email configuration settings."""
    smtp_server: str
    smtp_port: int
    username: Optional[str]
    password: Optional[str]
    sender: str
    use_tls: bool = True
    timeout: int = 30

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailConfig":
        return cls(
            smtp_server=settings.SMTP_SERVER,
            smtp_port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            sender=settings.NOTIFICATION_SENDER,
            use_tls=settings.SMTP_USE_TLS
        )


class EmailRecipient(BaseModel):
    """Email recipient model."""
    email: EmailStr
    name: Optional[str] = None

    def __str__(self):
        return f"{self.name} <{self.email}>" if self.name else str(self.email)


class EmailTemplate(BaseModel):
    """Email template model."""
    name: str
    subject: str
    html_content: str
    text_content: Optional[str] = None
    variables: List[str] = []


class EmailMessage(BaseModel):
    """Email message model."""
    recipients: List[EmailRecipient]
    subject: str = ""
    html_content: Optional[str] = None
    text_content: Optional[str] = None
    template_name: Optional[str] = None
    template_data: Dict[str, Any] = {}


class EmailService:
    """Renders templated emails and sends them over SMTP."""

    def __init__(self, config: EmailConfig):
        self.config = config
        self.template_env = Environment(autoescape=True, undefined=StrictUndefined)
        self.templates = self._load_default_templates()

    def _load_default_templates(self) -> Dict[str, EmailTemplate]:
        return {
            "new_order": EmailTemplate(
                name="new_order",
                subject="New order {{ order_id }} for {{ customer_name }}",
                html_content=self._get_new_order_template(),
                text_content=(
                    "Order {{ order_id }} for {{ customer_name }} was created.\n"
                    "Items: {{ item_count }}\n"
                    "Total: {{ total }}\n"
                    "Expected delivery: {{ expected_delivery }}"
                ),
                variables=["order_id", "customer_name", "total", "item_count", "expected_delivery", "user_name"]
            )
        }

    def get_template(self, name: str) -> Optional[EmailTemplate]:
        """Get email template by name."""
        return self.templates.get(name)

    def render_template(self, template_name: str, data: Dict[str, Any]) -> Dict[str, Optional[str]]:
        """Render email template with data."""
        template = self.get_template(template_name)
        if not template:
            raise ValueError(f"Template '{template_name}' not found")

        def render(source: Optional[str]) -> Optional[str]:
            if source is None:
                return None
            return self.template_env.from_string(source).render(**data)

        return {
            "subject": render(template.subject),
            "html_content": render(template.html_content),
            "text_content": render(template.text_content)
        }

    def prepare(self, message: EmailMessage) -> EmailMessage:
        """Fill subject and bodies from the message's template, if any."""
        if not message.template_name:
            return message
        rendered = self.render_template(message.template_name, message.template_data)
        return message.model_copy(update=rendered)

    def build_mime(self, message: EmailMessage) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['From'] = self.config.sender
        msg['To'] = ", ".join(str(r) for r in message.recipients)
        msg['Subject'] = message.subject

        if message.text_content:
            msg.attach(MIMEText(message.text_content, 'plain'))
        if message.html_content:
            msg.attach(MIMEText(message.html_content, 'html'))
        return msg

    async def send_email_async(self, message: EmailMessage) -> bool:
        """Send email asynchronously; failures are logged and reported as False."""
        message = self.prepare(message)
        msg = self.build_mime(message)
        all_recipients = [r.email for r in message.recipients]

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.config.smtp_server,
                port=self.config.smtp_port,
                start_tls=self.config.use_tls,
                username=self.config.username,
                password=self.config.password,
                recipients=all_recipients,
                timeout=self.config.timeout
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{message.subject}': {e}")
            return False

        logger.info(f"Email sent successfully (async) to {len(all_recipients)} recipients")
        return True

    def _get_new_order_template(self) -> str:
        return """
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
                .container { max-width: 600px; margin: 0 auto; padding: 20px; }
                .header { background: #1d4ed8; color: white; padding: 20px; text-align: center; }
                .content { padding: 30px 20px; background: #f8f9fa; }
                .footer { padding: 20px; text-align: center; color: #666; font-size: 12px; }
                table { width: 100%; border-collapse: collapse; }
                td { padding: 6px 0; }
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>New Order {{ order_id }}</h1>
                </div>
                <div class="content">
                    <p>Hello {{ user_name }},</p>
                    <p>A new order has been created for <strong>{{ customer_name }}</strong>.</p>
                    <table>
                        <tr><td>Order</td><td>{{ order_id }}</td></tr>
                        <tr><td>Items</td><td>{{ item_count }}</td></tr>
                        <tr><td>Total</td><td>{{ total }}</td></tr>
                        <tr><td>Expected delivery</td><td>{{ expected_delivery }}</td></tr>
                    </table>
                </div>
                <div class="footer">
                    <p>This is an automated message from the order desk.</p>
                </div>
            </div>
        </body>
        </html>
        """
