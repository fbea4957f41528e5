"""Number and date formatting for the dashboard.

The default "ru" locale mirrors ru-RU conventions: digits grouped with a
no-break space and a decimal comma ("1 234,56"). The "en" locale uses
"1,234.56". Dates are formatted in the caller's timezone; pass `tz` to pin it.
"""

import re
from datetime import datetime, tzinfo
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext

from coinboard.catalog import canonical_fiat, fiat_symbol

NBSP = "\u00a0"

_SEPARATORS: dict[str, tuple[str, str]] = {
    # locale: (group separator, decimal separator)
    "ru": (NBSP, ","),
    "en": (",", "."),
}

_MONTHS_SHORT: dict[str, tuple[str, ...]] = {
    "ru": (
        "янв.", "февр.", "мар.", "апр.", "мая", "июн.",
        "июл.", "авг.", "сент.", "окт.", "нояб.", "дек.",
    ),
    "en": (
        "Jan", "Feb", "Mar", "Apr", "May", "Jun",
        "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
    ),
}

_MONTHS_LONG: dict[str, tuple[str, ...]] = {
    "ru": (
        "января", "февраля", "марта", "апреля", "мая", "июня",
        "июля", "августа", "сентября", "октября", "ноября", "декабря",
    ),
    "en": (
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ),
}

_TRAILING_ZEROS = re.compile(r"\.?0+$")


def _locale(locale: str) -> str:
    return locale if locale in _SEPARATORS else "ru"


def format_number(
    value: float,
    min_fraction: int = 2,
    max_fraction: int = 2,
    signed: bool = False,
    locale: str = "ru",
) -> str:
    """Formats a number with grouping and a bounded number of decimals.

    Rounds half away from zero at `max_fraction` digits, then drops trailing
    zeros down to `min_fraction` digits. With `signed`, positive values get
    a leading '+'.
    """
    if min_fraction > max_fraction:
        err_msg = "min_fraction cannot exceed max_fraction."
        raise ValueError(err_msg)
    try:
        number = Decimal(str(value))
    except InvalidOperation as e:
        err_msg = f"Cannot format {value!r} as a number."
        raise ValueError(err_msg) from e
    if number.is_nan():
        return "NaN"
    if number.is_infinite():
        return "-∞" if number.is_signed() else "∞"

    group_sep, decimal_sep = _SEPARATORS[_locale(locale)]
    quantum = Decimal(1).scaleb(-max_fraction)
    # The default context holds 28 digits; widen it so huge amounts quantize.
    with localcontext() as ctx:
        ctx.prec = max(28, number.adjusted() + max_fraction + 2)
        rounded = number.quantize(quantum, rounding=ROUND_HALF_UP)
        digits = f"{abs(rounded):.{max_fraction}f}"
    sign = "-" if rounded < 0 else "+" if signed and rounded > 0 else ""
    if signed and rounded == 0:
        sign = "+"

    integer_part, _, fraction = digits.partition(".")
    while len(fraction) > min_fraction and fraction.endswith("0"):
        fraction = fraction[:-1]

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)
    grouped = group_sep.join(groups)

    return f"{sign}{grouped}{decimal_sep}{fraction}" if fraction else f"{sign}{grouped}"


def format_price(value: float, locale: str = "ru") -> str:
    return format_number(value, 2, 2, locale=locale)


def format_change(value: float, locale: str = "ru") -> str:
    """Two decimals with the sign always shown ('+1 234,50', '-3,10')."""
    return format_number(value, 2, 2, signed=True, locale=locale)


def format_fiat(value: float, code: str, locale: str = "ru") -> str:
    """'1 234,56 ₽ RUB'."""
    key = canonical_fiat(code)
    return f"{format_price(value, locale)} {fiat_symbol(key)} {key.upper()}"


def format_crypto(value: float, decimals: int = 8, locale: str = "ru") -> str:
    """Formats a coin amount.

    Amounts of one coin or more get 2 to 6 grouped decimals; smaller amounts
    keep up to `decimals` places with trailing zeros stripped ('0.00012').
    """
    if value >= 1:
        return format_number(value, 2, 6, locale=locale)
    return strip_trailing_zeros(f"{value:.{decimals}f}")


def strip_trailing_zeros(text: str) -> str:
    """'0.50000000' -> '0.5', '0.00000000' -> '0'."""
    if "." not in text:
        return text
    return _TRAILING_ZEROS.sub("", text) or "0"


def format_rate_label(crypto: str, code: str, rate: float, locale: str = "ru") -> str:
    """'1 BTC = 6 543 210,00 ₽ RUB'."""
    key = canonical_fiat(code)
    return (
        f"1 {crypto.strip().upper()} = {format_price(rate, locale)} "
        f"{fiat_symbol(key)} {key.upper()}"
    )


def quote_label(currency: str) -> str:
    """The quote shown next to a coin: usd is traded as USDT."""
    key = canonical_fiat(currency)
    return "USDT" if key == "usd" else key.upper()


def pair_label(crypto: str, currency: str) -> str:
    return f"{crypto.strip().upper()}/{quote_label(currency)}"


def _local(dt: datetime, tz: tzinfo | None) -> datetime:
    return dt.astimezone(tz)


def format_axis_date(
    dt: datetime, period: str, locale: str = "ru", tz: tzinfo | None = None
) -> str:
    """X-axis label: time of day for 1d, day and hour for 7d, else day and month."""
    local = _local(dt, tz)
    if period == "1d":
        return f"{local:%H:%M}"
    if period == "7d":
        return f"{local.day}, {local:%H}"
    month = _MONTHS_SHORT[_locale(locale)][local.month - 1]
    return f"{local.day} {month}"


def format_tooltip_date(
    dt: datetime, period: str, locale: str = "ru", tz: tzinfo | None = None
) -> str:
    """Hover label: '5 января, 14:00' for 1d, otherwise '5 января 2024 г.'."""
    loc = _locale(locale)
    local = _local(dt, tz)
    month = _MONTHS_LONG[loc][local.month - 1]
    if period == "1d":
        return f"{local.day} {month}, {local:%H:%M}"
    suffix = " г." if loc == "ru" else ""
    return f"{local.day} {month} {local.year}{suffix}"


def format_short_date(dt: datetime, tz: tzinfo | None = None) -> str:
    """'20.04.2024'."""
    return f"{_local(dt, tz):%d.%m.%Y}"


def format_timestamp(dt: datetime, locale: str = "ru", tz: tzinfo | None = None) -> str:
    """Last-updated label: '5 янв., 14:03:09'."""
    local = _local(dt, tz)
    month = _MONTHS_SHORT[_locale(locale)][local.month - 1]
    return f"{local.day} {month}, {local:%H:%M:%S}"


def format_block(block: int, locale: str = "ru") -> str:
    return format_number(block, 0, 0, locale=locale)


def day_label(days: int, locale: str = "ru") -> str:
    """The word for 'days' agreeing with the number.

    Russian: 1, 21, 31 -> 'день'; 2-4, 22-24 -> 'дня'; 5-20, 11-14 and the
    rest -> 'дней'.
    """
    if _locale(locale) == "en":
        return "day" if days == 1 else "days"

    last_digit = days % 10
    last_two_digits = days % 100
    if 11 <= last_two_digits <= 14:
        return "дней"
    if last_digit == 1:
        return "день"
    if 2 <= last_digit <= 4:
        return "дня"
    return "дней"
