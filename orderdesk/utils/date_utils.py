"""
Date and time utility functions for the order desk.
Handles the business timezone, date parsing and list filter ranges.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union
import pytz
from dateutil import parser
from dateutil.relativedelta import relativedelta

from ..config.settings import get_settings

DATE_RANGES = ("today", "this_week", "this_month", "all")


def business_timezone():
    return pytz.timezone(get_settings().BUSINESS_TIMEZONE)


class DateUtils:
    """Date helpers pinned to the business timezone."""

    @staticmethod
    def get_business_now() -> datetime:
        """Get current time in the business timezone."""
        return datetime.now(business_timezone())

    @staticmethod
    def business_today() -> date:
        """Calendar date used for allocations and default order dates."""
        return DateUtils.get_business_now().date()

    @staticmethod
    def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
        """Accept ISO strings, dates or datetimes; empty input gives ``None``."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if not value.strip():
            return None
        try:
            return parser.parse(value.strip()).date()
        except (ValueError, OverflowError):
            raise ValueError(f"Unrecognised date: {value!r}")

    @staticmethod
    def week_boundaries(day: date) -> Tuple[date, date]:
        """Sunday to Saturday week containing ``day``."""
        # Monday is 0 in weekday(); shift so Sunday starts the week
        start = day - timedelta(days=(day.weekday() + 1) % 7)
        return start, start + timedelta(days=6)

    @staticmethod
    def month_boundaries(day: date) -> Tuple[date, date]:
        start = day.replace(day=1)
        end = start + relativedelta(months=1) - timedelta(days=1)
        return start, end

    @staticmethod
    def range_for(name: str, today: Optional[date] = None) -> Optional[Tuple[date, date]]:
        """Inclusive bounds for a named list range; ``all`` has none."""
        today = today or DateUtils.business_today()
        if name == "today":
            return today, today
        if name == "this_week":
            return DateUtils.week_boundaries(today)
        if name == "this_month":
            return DateUtils.month_boundaries(today)
        if name == "all":
            return None
        raise ValueError(f"Unknown date range: {name}")

    @staticmethod
    def format_for_display(value: Optional[date], fmt: str = "%d %b %Y") -> str:
        if not value:
            return ""
        return value.strftime(fmt)


# Convenience functions for common operations
def business_today() -> date:
    return DateUtils.business_today()


def parse_date(value) -> Optional[date]:
    return DateUtils.parse_date(value)
