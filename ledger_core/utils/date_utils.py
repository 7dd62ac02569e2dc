"""Calendar helpers shared by billing-cycle and installment math"""

from calendar import monthrange
from datetime import date
from dateutil.relativedelta import relativedelta


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month (28-31, leap years included)"""
    return monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, pulling day 29-31 back to the month's last day when needed"""
    return date(year, month, min(day, last_day_of_month(year, month)))


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def add_months(d: date, months: int) -> date:
    """Shift by whole months; Jan 31 + 1 month -> Feb 28/29"""
    return d + relativedelta(months=months)
