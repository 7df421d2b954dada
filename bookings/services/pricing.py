from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Mapping

from .availability import BookingSpan, InvalidSpanError
from .errors import BookingError

FOUR_HOUR = "four_hour"
TWELVE_HOUR = "twelve_hour"
DAY = "day"
MONTH = "month"

DURATION_CATEGORIES = (FOUR_HOUR, TWELVE_HOUR, DAY, MONTH)
FLAT_CATEGORIES = (FOUR_HOUR, TWELVE_HOUR, MONTH)

DURATION_CHOICES = [
    (FOUR_HOUR, "4 hours"),
    (TWELVE_HOUR, "12 hours"),
    (DAY, "Per day"),
    (MONTH, "Month"),
]


class UnpricedCategoryError(BookingError):
    """The vehicle has no rate configured for the requested duration."""

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"No rate configured for duration '{category}'.")


def _check_category(category: str) -> str:
    if category not in DURATION_CATEGORIES:
        raise ValueError(f"Unknown duration category: {category!r}")
    return category


@dataclass(frozen=True)
class RateTable:
    """
    Per-vehicle prices keyed by duration category.

    None (or zero) means the option is not offered for the vehicle.
    """

    four_hour: Decimal | None = None
    twelve_hour: Decimal | None = None
    day: Decimal | None = None
    month: Decimal | None = None

    def __post_init__(self):
        for category in DURATION_CATEGORIES:
            value = getattr(self, category)
            if value is None:
                continue
            if not isinstance(value, Decimal):
                try:
                    value = Decimal(str(value))
                except InvalidOperation as exc:
                    raise ValueError(f"Rate for '{category}' is not a number: {value!r}") from exc
            if not value.is_finite():
                raise ValueError(f"Rate for '{category}' is not a number: {value!r}")
            if value < 0:
                raise ValueError(f"Rate for '{category}' must not be negative.")
            object.__setattr__(self, category, value)

    @classmethod
    def from_mapping(cls, rates: Mapping[str, object]) -> "RateTable":
        unknown = set(rates) - set(DURATION_CATEGORIES)
        if unknown:
            raise ValueError(f"Unknown duration categories: {', '.join(sorted(unknown))}")
        return cls(**{key: value for key, value in rates.items() if value not in (None, "")})

    def rate_for(self, category: str) -> Decimal | None:
        value = getattr(self, _check_category(category))
        if value and value > 0:
            return value
        return None

    def as_dict(self) -> dict[str, Decimal | None]:
        return {category: self.rate_for(category) for category in DURATION_CATEGORIES}


@dataclass(frozen=True)
class PriceQuote:
    amount: Decimal
    category: str
    multiplier: int
    unit_rate: Decimal

    def as_dict(self) -> dict:
        return {
            "amount": str(self.amount),
            "category": self.category,
            "multiplier": self.multiplier,
            "unit_rate": str(self.unit_rate),
        }


def billable_days(start: datetime, end: datetime) -> int:
    """Whole rental days between start and end; any partial day counts as a full one."""
    span = BookingSpan(start, end)
    elapsed = span.duration
    days, remainder = divmod(elapsed, timedelta(days=1))
    return days + 1 if remainder else days


def priced_categories(rate_table: RateTable) -> list[str]:
    return [category for category in DURATION_CATEGORIES if rate_table.rate_for(category) is not None]


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    for day in (value.day, 30, 29, 28):
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"Cannot add {months} month(s) to {value!r}")


def default_end(category: str, start: datetime) -> datetime | None:
    """Nominal end of a flat-rate booking; None for day-based bookings."""
    category = _check_category(category)
    if category == FOUR_HOUR:
        return start + timedelta(hours=4)
    if category == TWELVE_HOUR:
        return start + timedelta(hours=12)
    if category == MONTH:
        return _add_months(start, 1)
    return None


def compute_price(
    rate_table: RateTable,
    category: str,
    start: datetime | None = None,
    end: datetime | None = None,
) -> PriceQuote:
    """
    Price a booking for a vehicle.

    Flat categories (four_hour, twelve_hour, month) return the configured rate as is,
    whatever the elapsed time. The day category bills ceil(elapsed / 24h) days at the
    day rate. Raises UnpricedCategoryError when the rate is missing and InvalidSpanError
    when end <= start.
    """
    category = _check_category(category)

    span = None
    if start is not None or end is not None:
        if start is None or end is None:
            raise InvalidSpanError("Both start and end are required.")
        span = BookingSpan(start, end)

    if category == DAY and span is None:
        raise InvalidSpanError("A day-based price needs a start and an end.")

    rate = rate_table.rate_for(category)
    if rate is None:
        raise UnpricedCategoryError(category)

    multiplier = 1
    if category == DAY:
        multiplier = billable_days(span.start, span.end)
    return PriceQuote(amount=rate * multiplier, category=category, multiplier=multiplier, unit_rate=rate)
