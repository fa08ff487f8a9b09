import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum, IntEnum
from typing import List, Union


class Granularity(str, Enum):
    DAY = "day"
    WEEK = "week"


class Weekday(IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def parse(cls, value: Union[str, int, "Weekday"]) -> "Weekday":
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown weekday: {value!r}") from None
        return cls(value)


@dataclass(frozen=True)
class Bucket:
    start: date
    end: date
    granularity: Granularity

    @property
    def key(self) -> str:
        return self.start.isoformat()

    @property
    def label(self) -> str:
        # "Mar 10": abbreviated month, unpadded day
        return f"{self.start:%b} {self.start.day}"

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def days(self) -> List[date]:
        return [self.start + timedelta(days=i) for i in range((self.end - self.start).days + 1)]


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value

def week_start(day: date, week_starts_on: Weekday = Weekday.SUNDAY) -> date:
    return day - timedelta(days=(day.weekday() - week_starts_on) % 7)

def add_months(day: date, months: int) -> date:
    idx = day.month - 1 + months
    year, month = day.year + idx // 12, idx % 12 + 1
    return day.replace(year=year, month=month, day=min(day.day, calendar.monthrange(year, month)[1]))

def _parse_granularity(granularity) -> Granularity:
    try:
        return Granularity(granularity)
    except ValueError:
        raise ValueError(f"Unknown granularity {granularity!r}; expected 'day' or 'week'") from None

def generate_buckets(
    reference_date: Union[date, datetime],
    count: int,
    granularity: Union[str, Granularity],
    week_starts_on: Weekday = Weekday.SUNDAY,
    offset: int = 0,
) -> List[Bucket]:
    """
    Builds the time buckets a view is drawn against.

    'week' yields `count` consecutive weeks, the first containing
    reference_date shifted by `offset` weeks. 'day' yields every day of the
    month containing reference_date shifted by `offset` months and ignores
    `count`. Buckets never depend on the allocation data.
    """
    granularity = _parse_granularity(granularity)
    ref = _as_date(reference_date)

    if granularity is Granularity.DAY:
        ref = add_months(ref, offset)
        first = ref.replace(day=1)
        last = first.replace(day=calendar.monthrange(first.year, first.month)[1])
        return [Bucket(d, d, granularity) for d in Bucket(first, last, granularity).days()]

    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise ValueError(f"Bucket count must be a positive integer, got {count!r}")

    first = week_start(ref + timedelta(weeks=offset), Weekday.parse(week_starts_on))
    buckets = []
    for i in range(count):
        start = first + timedelta(weeks=i)
        buckets.append(Bucket(start, start + timedelta(days=6), granularity))
    return buckets
