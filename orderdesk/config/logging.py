import json
import logging
import logging.config
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any, Optional, Union
from .settings import get_settings

settings = get_settings()


# Custom formatter with colors for console output
class ColoredFormatter(logging.Formatter):
    """Custom formatter with color coding for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'       # Reset
    }

    def format(self, record):
        levelname = record.levelname
        color = self.COLORS.get(levelname, self.COLORS['RESET'])
        record.levelname = f"{color}{levelname}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


# JSON formatter for structured logging
class JSONFormatter(logging.Formatter):
    """JSON formatter for audit and structured records."""

    EXTRA_FIELDS = ('user_id', 'request_id', 'duration', 'order_id', 'amount', 'action', 'product_id')

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for field in self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def build_logging_config(log_level: Optional[str] = None, log_file: Optional[str] = None) -> Dict[str, Any]:
    """Build the dictConfig for the application loggers."""
    level = log_level or settings.LOG_LEVEL
    log_file = log_file if log_file is not None else settings.LOG_FILE

    handlers: Dict[str, Any] = {
        'console': {
            'level': 'DEBUG' if settings.DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'colored' if settings.DEBUG else 'standard',
            'stream': 'ext://sys.stdout'
        },
        'audit_console': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': 'json',
            'stream': 'ext://sys.stdout'
        }
    }
    app_handlers = ['console']

    if log_file:
        handlers['file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'detailed',
            'filename': log_file,
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'encoding': 'utf8'
        }
        app_handlers = ['console', 'file']

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': settings.LOG_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(funcName)s(): %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'colored': {
                '()': ColoredFormatter,
                'format': settings.LOG_FORMAT,
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'json': {
                '()': JSONFormatter
            }
        },
        'handlers': handlers,
        'loggers': {
            '': {  # Root logger
                'handlers': app_handlers,
                'level': level,
            },
            'orderdesk': {
                'handlers': app_handlers,
                'level': 'DEBUG' if settings.DEBUG else level,
                'propagate': False
            },
            'api': {
                'handlers': app_handlers,
                'level': 'INFO',
                'propagate': False
            },
            'audit': {
                'handlers': ['audit_console'] + (['file'] if log_file else []),
                'level': 'INFO',
                'propagate': False
            },
            'uvicorn.access': {
                'handlers': app_handlers,
                'level': 'INFO',
                'propagate': False
            },
            'sqlalchemy.engine': {
                'handlers': app_handlers,
                'level': 'INFO' if settings.DATABASE_ECHO else 'WARNING',
                'propagate': False
            }
        }
    }


def setup_logging(log_level: Optional[str] = None, log_file: Optional[str] = None):
    """Setup logging configuration."""
    logging.config.dictConfig(build_logging_config(log_level, log_file))

    logging.getLogger("multipart").setLevel(logging.WARNING)
    if not settings.DEBUG:
        logging.getLogger("aiosmtplib").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def log_api_request(request_id: str, method: str, path: str, user_id: str = None):
    """Log API request information."""
    logger = get_logger("api")
    extra = {'request_id': request_id}
    if user_id:
        extra['user_id'] = user_id
    logger.info(f"{method} {path}", extra=extra)


def log_api_response(request_id: str, status_code: int, duration: float):
    """Log API response information."""
    logger = get_logger("api")
    extra = {'request_id': request_id, 'duration': duration}
    logger.info(f"Response: {status_code} ({duration:.3f}s)", extra=extra)


def log_audit_event(action: str, user_id: Optional[str], order_id: str,
                    amount: Union[Decimal, float, None] = None, details: str = None):
    """Log an auditable order action (actor, order, timestamp, amount)."""
    logger = get_logger("audit")
    extra = {'action': action, 'order_id': order_id, 'user_id': user_id}
    if amount is not None:
        extra['amount'] = str(amount)

    message = f"AUDIT: {action} - order {order_id} by {user_id or 'unknown'}"
    if details:
        message += f" - {details}"

    logger.info(message, extra=extra)


def log_inventory_event(order_id: str, product_id: str, quantity: int, remaining: int):
    """Log a warehouse stock movement."""
    logger = get_logger("audit")
    extra = {'action': 'stock_deducted', 'order_id': order_id, 'product_id': product_id}
    logger.info(
        f"INVENTORY: {quantity} x {product_id} deducted for order {order_id} (remaining {remaining})",
        extra=extra
    )


def log_sales_record(order_id: str, amount: str):
    """Log a confirmed sale."""
    logger = get_logger("audit")
    extra = {'action': 'sale_confirmed', 'order_id': order_id, 'amount': amount}
    logger.info(f"SALES_RECORD: Sale confirmed for order {order_id}, amount: {amount}", extra=extra)


# Export commonly used functions
__all__ = [
    "setup_logging",
    "get_logger",
    "log_api_request",
    "log_api_response",
    "log_audit_event",
    "log_inventory_event",
    "log_sales_record"
]
