# campus_dispatch/utils/formatters.py
from datetime import datetime
import pytz
from decimal import Decimal, ROUND_HALF_UP
from ..config import Config

CENT = Decimal("0.01")

def round_money(amount: Decimal) -> Decimal:
    """Round a stored amount for display; stored values stay unrounded"""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)

def format_price(amount: Decimal) -> str:
    """Format a price"""
    return f"{round_money(amount):,.2f}"

def format_datetime(dt: datetime) -> str:
    """Format a timestamp in the configured timezone"""
    local_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    local_time = dt.astimezone(local_tz)
    return local_time.strftime("%Y-%m-%d %H:%M:%S")
