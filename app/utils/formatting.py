"""Human-readable dates and prices for notifications and session records."""

from datetime import datetime
from zoneinfo import ZoneInfo


def local_date_time(value: datetime, tz: ZoneInfo) -> tuple[str, str]:
    """Return ("DD/MM/YYYY", "HH:MM") for `value` in `tz`; naive values are taken as already local."""
    if value.tzinfo is not None:
        value = value.astimezone(tz)
    return value.strftime("%d/%m/%Y"), value.strftime("%H:%M")


def format_price(price: float, currency: str) -> str:
    return f"{currency}{price:.2f}"
