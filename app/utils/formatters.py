"""
Formatting helpers for templates.
Money is shown in pounds sterling; dates in UK day/month/year order.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from datetime import date, datetime
from typing import Union


def money_gbp(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format an amount as GBP with thousands separators and 2 decimals.

    Examples:
        money_gbp(1500) -> "£1,500.00"
        money_gbp(4.99) -> "£4.99"
        money_gbp(-5) -> "-£5.00"
        money_gbp(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    return f"{sign}£{abs(num):,.2f}"


def percent(value: Union[int, float, Decimal, None], decimals: int = 1) -> str:
    """
    Format a percentage, prefixing '+' for growth.

    Examples:
        percent(12.345) -> "+12.3%"
        percent(-4) -> "-4.0%"
    """
    if value is None:
        return "-"
    num = float(value)
    sign = "+" if num > 0 else ""
    return f"{sign}{num:.{decimals}f}%"


def date_uk(value: Union[date, datetime, None]) -> str:
    """
    Format a date as DD/MM/YYYY.

    Examples:
        date_uk(date(2026, 1, 12)) -> "12/01/2026"
    """
    if value is None:
        return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")


def datetime_uk(value: Union[datetime, None], with_time: bool = True) -> str:
    """
    Format a datetime as DD/MM/YYYY HH:MM.

    Examples:
        datetime_uk(datetime(2026, 1, 12, 15, 30)) -> "12/01/2026 15:30"
    """
    if value is None or not isinstance(value, datetime):
        return "-"

    if with_time:
        return value.strftime("%d/%m/%Y %H:%M")
    return value.strftime("%d/%m/%Y")
