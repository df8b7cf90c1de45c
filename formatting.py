from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Union

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
}

Number = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class TrendDelta:
    value: str
    is_positive: bool


def _round(amount: Number, include_cents: bool = True) -> Decimal:
    value = Decimal(str(amount))
    quantum = Decimal("0.01") if include_cents else Decimal("1")
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the cents
        ctx.prec = max(ctx.prec, value.adjusted() + 3)
        return value.quantize(quantum, rounding=ROUND_HALF_UP)


def format_currency(
    amount: Number, currency: str = "USD", *, include_cents: bool = True
) -> str:
    rounded = _round(amount, include_cents)
    sign = "-" if rounded < 0 else ""
    digits = f"{rounded.copy_abs():,.2f}" if include_cents else f"{rounded.copy_abs():,.0f}"
    code = (currency or "USD").upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{digits}"
    return f"{sign}{digits} {code}"


def format_trend(amount: Number, currency: str = "USD") -> TrendDelta:
    # the sign is taken after rounding so "-$0.00" never shows up
    rounded = _round(amount)
    if rounded < 0:
        return TrendDelta(format_currency(rounded, currency), False)
    return TrendDelta("+" + format_currency(rounded, currency), True)


def month_label(day: date) -> str:
    return f"{day:%b} {day.year}"


def day_label(day: date) -> str:
    return f"{day:%b} {day.day}"
