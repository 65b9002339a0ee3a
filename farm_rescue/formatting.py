"""
Small display helpers used by display-info and event payloads.
"""
import math


def format_money(amount):
    if amount is None or not math.isfinite(amount):
        return "$0"
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(int(amount)):,}"


def format_time(milliseconds):
    """120000 -> '2m 0s'. Negative or invalid input formats as zero."""
    if milliseconds is None or not math.isfinite(milliseconds) or milliseconds < 0:
        return "0m 0s"
    total_seconds = int(milliseconds // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}m {seconds}s"


def format_percentage(fraction, decimals=0):
    return f"{fraction * 100:.{decimals}f}%"


def format_multiplier(multiplier):
    return f"{multiplier:.1f}x"


def format_day(day):
    return f"Day {day}"
