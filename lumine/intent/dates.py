"""Indonesian temporal expression resolver.

Turns phrases such as "bulan lalu", "hari senin" or "dari tanggal 1 sampai tanggal 7" into a
`TimeContext`, and a `TimeContext` into a concrete inclusive `DateRange` relative to "today".

Resolution rules:
    - patterns are tried in a fixed order, longer explicit ranges first;
    - relative terms ("N hari/minggu/bulan/tahun lalu") subtract N calendar units;
    - missing years default to the current year;
    - weeks run Monday through Sunday;
    - a weekday resolves to its latest occurrence, which is today when today is that weekday.
"""

from __future__ import annotations

import calendar
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

import dateparser
from dateparser.conf import Settings as DateparserSettings

from lumine.intent.normalize import normalize_text
from lumine.intent.schema import (
    BudgetPeriod,
    ComparisonType,
    DateRange,
    DayContext,
    MonthContext,
    RangeContext,
    SpecificContext,
    TimeContext,
    WeekContext,
    YearContext,
)

logger = logging.getLogger(__name__)

_DATEPARSER_SETTINGS = DateparserSettings().replace(
    STRICT_PARSING=True,
    DATE_ORDER="DMY",
)

ID_MONTH_NAMES: tuple[str, ...] = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)
ID_MONTH_SHORT: tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des",
)
ID_WEEKDAY_NAMES: tuple[str, ...] = ("Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu")

_EN_MONTH_NAMES: tuple[str, ...] = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

_MONTHS: dict[str, int] = {
    **{name.lower(): idx + 1 for idx, name in enumerate(ID_MONTH_NAMES)},
    **{name.lower(): idx + 1 for idx, name in enumerate(ID_MONTH_SHORT)},
    **{name: idx + 1 for idx, name in enumerate(_EN_MONTH_NAMES)},
    "agt": 8,
    "ags": 8,
    "aug": 8,
    "oct": 10,
    "dec": 12,
}
_MONTH_PATTERN = "|".join(sorted(_MONTHS, key=len, reverse=True))

# date.weekday() numbering. "minggu" only means Sunday after "hari"; alone it means "week".
_WEEKDAYS: dict[str, int] = {
    "senin": 0,
    "selasa": 1,
    "rabu": 2,
    "kamis": 3,
    "jumat": 4,
    "sabtu": 5,
    "minggu": 6,
    "ahad": 6,
}
_WEEKDAY_PATTERN = "|".join(_WEEKDAYS)
_BARE_WEEKDAY_PATTERN = "|".join(name for name in _WEEKDAYS if name != "minggu")

_UNTIL = r"(?:sampai|hingga|sampe|s/d|-)"


def _today(now: date | datetime) -> date:
    return now.date() if isinstance(now, datetime) else now


def _ordered(start: date, end: date) -> tuple[date, date]:
    return (start, end) if start <= end else (end, start)


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""

    return date(year, month, 1), date(year, month, last_day_of_month(year, month))


def shift_months(day: date, months: int) -> date:
    """Move `day` by `months` calendar months, clamping to the target month's length."""

    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, last_day_of_month(year, month)))


def _clamped_day(year: int, month: int, day: int) -> date:
    return date(year, month, max(1, min(day, last_day_of_month(year, month))))


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _parse_numeric_date(fragment: str) -> date | None:
    dt = dateparser.parse(fragment, languages=["id"], settings=_DATEPARSER_SETTINGS)
    if not dt:
        return None
    return dt.date()


def _year_or(value: str | None, default: int) -> int:
    return int(value) if value else default


def _day_month_range(m: re.Match[str], today: date) -> TimeContext | None:
    y1 = m.group("y1")
    y2 = m.group("y2")
    year2 = _year_or(y2, _year_or(y1, today.year))
    year1 = _year_or(y1, year2)
    start = _safe_date(year1, _MONTHS[m.group("m1")], int(m.group("d1")))
    end = _safe_date(year2, _MONTHS[m.group("m2")], int(m.group("d2")))
    if start is None or end is None:
        return None
    start, end = _ordered(start, end)
    return RangeContext(start=start, end=end)


def _days_in_named_month(m: re.Match[str], today: date) -> TimeContext | None:
    year = _year_or(m.group("y"), today.year)
    month = _MONTHS[m.group("m")]
    start = _safe_date(year, month, int(m.group("d1")))
    end = _safe_date(year, month, int(m.group("d2")))
    if start is None or end is None:
        return None
    start, end = _ordered(start, end)
    return RangeContext(start=start, end=end)


def _month_range(m: re.Match[str], today: date) -> TimeContext:
    y2 = m.group("y2")
    year2 = _year_or(y2, _year_or(m.group("y1"), today.year))
    year1 = _year_or(m.group("y1"), year2)
    start, _ = month_bounds(year1, _MONTHS[m.group("m1")])
    _, end = month_bounds(year2, _MONTHS[m.group("m2")])
    start, end = _ordered(start, end)
    return RangeContext(start=start, end=end)


def _days_in_current_month(m: re.Match[str], today: date) -> TimeContext:
    start = _clamped_day(today.year, today.month, int(m.group("d1")))
    end = _clamped_day(today.year, today.month, int(m.group("d2")))
    start, end = _ordered(start, end)
    return RangeContext(start=start, end=end)


def _trailing_period(m: re.Match[str], today: date) -> TimeContext | None:
    n = int(m.group("n"))
    if n <= 0:
        return None
    unit = m.group("unit")
    if unit == "hari":
        start = today - timedelta(days=n - 1)
    elif unit == "minggu":
        start = today - timedelta(days=7 * n - 1)
    else:
        start = shift_months(today, -n) + timedelta(days=1)
    return RangeContext(start=start, end=today)


def _month_year(m: re.Match[str], today: date) -> TimeContext:
    return MonthContext(year=int(m.group("y")), month=_MONTHS[m.group("m")])


def _named_month(m: re.Match[str], today: date) -> TimeContext:
    return MonthContext(year=today.year, month=_MONTHS[m.group("m")])


def _specific_named(m: re.Match[str], today: date) -> TimeContext | None:
    day = _safe_date(_year_or(m.group("y"), today.year), _MONTHS[m.group("m")], int(m.group("d")))
    return SpecificContext(day=day) if day else None


def _specific_numeric(m: re.Match[str], today: date) -> TimeContext | None:
    year = m.group("y")
    if year is None:
        year = str(today.year)
    elif len(year) == 2:
        year = f"20{year}"
    day = _parse_numeric_date(f"{m.group('d')}/{m.group('m')}/{year}")
    return SpecificContext(day=day) if day else None


def _day_of_current_month(m: re.Match[str], today: date) -> TimeContext | None:
    day = _safe_date(today.year, today.month, int(m.group("d")))
    return SpecificContext(day=day) if day else None


def _weekday(m: re.Match[str], today: date) -> TimeContext:
    return DayContext(weekday=_WEEKDAYS[m.group("wd")])


def _days_ago(m: re.Match[str], today: date) -> TimeContext:
    return DayContext(offset=int(m.group("n")))


def _constant(context: TimeContext) -> Callable[[re.Match[str], date], TimeContext]:
    def handler(m: re.Match[str], today: date) -> TimeContext:
        return context

    return handler


def _weeks_ago(m: re.Match[str], today: date) -> TimeContext:
    return WeekContext(offset=int(m.group("n")))


def _months_ago(m: re.Match[str], today: date) -> TimeContext:
    return MonthContext(offset=int(m.group("n")))


def _years_ago(m: re.Match[str], today: date) -> TimeContext:
    return YearContext(offset=int(m.group("n")))


def _explicit_year(m: re.Match[str], today: date) -> TimeContext:
    year = int(m.group("y"))
    return RangeContext(start=date(year, 1, 1), end=date(year, 12, 31))


_Handler = Callable[[re.Match[str], date], TimeContext | None]

_RESOLVERS: tuple[tuple[re.Pattern[str], _Handler], ...] = (
    (
        re.compile(
            rf"\bdari\s+(?:tanggal\s+|tgl\s+)?(?P<d1>\d{{1,2}})\s+(?:bulan\s+)?(?P<m1>{_MONTH_PATTERN})"
            rf"(?:\s+(?P<y1>\d{{4}}))?\s+{_UNTIL}\s+(?:tanggal\s+|tgl\s+)?(?P<d2>\d{{1,2}})\s+"
            rf"(?:bulan\s+)?(?P<m2>{_MONTH_PATTERN})(?:\s+(?P<y2>\d{{4}}))?\b"
        ),
        _day_month_range,
    ),
    (
        re.compile(
            rf"\bdari\s+(?:tanggal\s+|tgl\s+)?(?P<d1>\d{{1,2}})\s+{_UNTIL}\s+(?:tanggal\s+|tgl\s+)?"
            rf"(?P<d2>\d{{1,2}})\s+(?:bulan\s+)?(?P<m>{_MONTH_PATTERN})(?:\s+(?P<y>\d{{4}}))?\b"
        ),
        _days_in_named_month,
    ),
    (
        re.compile(
            rf"\bdari\s+(?:bulan\s+)?(?P<m1>{_MONTH_PATTERN})(?:\s+(?P<y1>\d{{4}}))?\s+{_UNTIL}\s+"
            rf"(?:bulan\s+)?(?P<m2>{_MONTH_PATTERN})(?:\s+(?P<y2>\d{{4}}))?\b"
        ),
        _month_range,
    ),
    (
        re.compile(
            rf"\bdari\s+(?:tanggal\s+|tgl\s+)?(?P<d1>\d{{1,2}})\s+{_UNTIL}\s+(?:tanggal\s+|tgl\s+)?"
            rf"(?P<d2>\d{{1,2}})\b"
        ),
        _days_in_current_month,
    ),
    (
        re.compile(
            r"\bantara\s+(?:tanggal\s+|tgl\s+)?(?P<d1>\d{1,2})\s+(?:dan|sampai|hingga)\s+"
            r"(?:tanggal\s+|tgl\s+)?(?P<d2>\d{1,2})\b"
        ),
        _days_in_current_month,
    ),
    (
        re.compile(r"\bselama\s+(?P<n>\d+)\s+(?P<unit>hari|minggu|bulan)\b"),
        _trailing_period,
    ),
    (
        re.compile(rf"(?<!\d\s)\b(?:bulan\s+)?(?P<m>{_MONTH_PATTERN})\s+(?P<y>\d{{4}})\b"),
        _month_year,
    ),
    (
        re.compile(rf"\bbulan\s+(?P<m>{_MONTH_PATTERN})\b"),
        _named_month,
    ),
    (
        re.compile(
            rf"\b(?:tanggal\s+|tgl\s+)?(?P<d>\d{{1,2}})\s+(?P<m>{_MONTH_PATTERN})"
            rf"(?:\s+(?P<y>\d{{4}}))?\b"
        ),
        _specific_named,
    ),
    (
        re.compile(r"\b(?P<d>\d{1,2})[/-](?P<m>\d{1,2})(?:[/-](?P<y>\d{4}|\d{2}))?\b"),
        _specific_numeric,
    ),
    (re.compile(r"\b(?:tanggal|tgl)\s+(?P<d>\d{1,2})\b(?![/-])"), _day_of_current_month),
    (re.compile(rf"\bhari\s+(?P<wd>{_WEEKDAY_PATTERN})\b"), _weekday),
    (re.compile(rf"\b(?P<wd>{_BARE_WEEKDAY_PATTERN})\b"), _weekday),
    (re.compile(r"\b(?P<n>\d+)\s+hari\s+(?:yang\s+)?(?:lalu|kemarin|sebelumnya)\b"), _days_ago),
    (re.compile(r"\bkemarin\s+lusa\b"), _constant(DayContext(offset=2))),
    (
        # "minggu/bulan/tahun kemarin" belong to the week, month and year rules below.
        re.compile(r"(?<!minggu )(?<!bulan )(?<!tahun )\bkemarin\b|\bhari\s+lalu\b"),
        _constant(DayContext(offset=1)),
    ),
    (re.compile(r"\bhari\s+ini\b|\btadi\b"), _constant(DayContext(offset=0))),
    (re.compile(r"\b(?P<n>\d+)\s+minggu\s+(?:yang\s+)?(?:lalu|sebelumnya)\b"), _weeks_ago),
    (re.compile(r"\bminggu\s+ini\b"), _constant(WeekContext(offset=0))),
    (re.compile(r"\bminggu\s+(?:lalu|kemarin|sebelumnya)\b"), _constant(WeekContext(offset=1))),
    (re.compile(r"\b(?P<n>\d+)\s+bulan\s+(?:yang\s+)?(?:lalu|sebelumnya)\b"), _months_ago),
    (re.compile(r"\bbulan\s+ini\b"), _constant(MonthContext(offset=0))),
    (re.compile(r"\bbulan\s+(?:lalu|kemarin|sebelumnya)\b"), _constant(MonthContext(offset=1))),
    (re.compile(r"\b(?P<n>\d+)\s+tahun\s+(?:yang\s+)?(?:lalu|sebelumnya)\b"), _years_ago),
    (re.compile(r"\btahun\s+ini\b"), _constant(YearContext(offset=0))),
    (re.compile(r"\btahun\s+(?:lalu|kemarin|sebelumnya)\b"), _constant(YearContext(offset=1))),
    (re.compile(r"\btahun\s+(?P<y>\d{4})\b"), _explicit_year),
)


@dataclass(frozen=True)
class TemporalMatch:
    """A resolved time expression and where it sits in the normalized text."""

    context: TimeContext
    start: int
    end: int


def find_temporal(text: str, now: date | datetime) -> TemporalMatch | None:
    """Find the first resolvable time expression in `text`.

    Offsets index into `normalize_text(text)`. An expression that names a day outside the
    representable calendar ("999999 hari lalu", "tahun 0000") yields `None`: the message is then
    treated as carrying no time scope at all.
    """

    value = normalize_text(text)
    if not value:
        return None

    today = _today(now)
    for pattern, handler in _RESOLVERS:
        match = pattern.search(value)
        if not match:
            continue
        try:
            context = handler(match, today)
            if context is None:
                continue
            to_date_range(context, today)
        except (ValueError, OverflowError) as exc:
            logger.debug("time expression out of range text=%r reason=%s", match.group(0), exc)
            return None
        return TemporalMatch(context=context, start=match.start(), end=match.end())
    return None


def resolve(text: str, now: date | datetime) -> TimeContext | None:
    """Resolve the first temporal expression in `text`.

    Returns:
        A `TimeContext`, or `None` when the text carries no usable time expression.
    """

    found = find_temporal(text, now)
    return found.context if found else None


def strip_temporal(text: str, now: date | datetime) -> str:
    """Normalized `text` with its resolved time expression cut out.

    Keeps day and month numerals ("5 juni", "2 hari lalu") from being read as amounts.
    """

    value = normalize_text(text)
    found = find_temporal(value, now)
    if found is None:
        return value
    return normalize_text(f"{value[:found.start]} {value[found.end:]}")


def format_date_id(day: date, *, short: bool = False) -> str:
    """Format a date the Indonesian way: "03 Juni 2025" (or "03 Jun 2025" with `short`)."""

    names = ID_MONTH_SHORT if short else ID_MONTH_NAMES
    return f"{day.day:02d} {names[day.month - 1]} {day.year}"


def _relative_label(offset: int, unit: str) -> str:
    if offset == 0:
        return f"{unit} ini"
    if offset == 1:
        return f"{unit} lalu"
    return f"{offset} {unit} lalu"


def week_bounds(today: date, offset: int = 0) -> tuple[date, date]:
    monday = today - timedelta(days=today.weekday()) - timedelta(weeks=offset)
    return monday, monday + timedelta(days=6)


def to_date_range(context: TimeContext, now: date | datetime) -> DateRange:
    """Convert a `TimeContext` into a concrete inclusive `DateRange`."""

    today = _today(now)

    if isinstance(context, DayContext):
        if context.weekday is not None:
            back = (today.weekday() - context.weekday) % 7
            day = today - timedelta(days=back)
            label = f"hari {ID_WEEKDAY_NAMES[context.weekday].lower()} ({format_date_id(day, short=True)})"
            return DateRange(start_date=day, end_date=day, description=label)
        offset = context.offset or 0
        day = today - timedelta(days=offset)
        if offset == 0:
            label = "hari ini"
        elif offset == 1:
            label = f"kemarin ({format_date_id(day, short=True)})"
        else:
            label = f"{offset} hari lalu ({format_date_id(day, short=True)})"
        return DateRange(start_date=day, end_date=day, description=label)

    if isinstance(context, WeekContext):
        start, end = week_bounds(today, context.offset)
        return DateRange(
            start_date=start, end_date=end, description=_relative_label(context.offset, "minggu")
        )

    if isinstance(context, MonthContext):
        if context.offset is not None:
            anchor = shift_months(today.replace(day=1), -context.offset)
            start, end = month_bounds(anchor.year, anchor.month)
            label = _relative_label(context.offset, "bulan")
        else:
            if context.year is None or context.month is None:
                raise TypeError(f"Month context without offset or year/month: {context!r}")
            start, end = month_bounds(context.year, context.month)
            label = f"bulan {ID_MONTH_NAMES[context.month - 1]} {context.year}"
        return DateRange(start_date=start, end_date=end, description=label)

    if isinstance(context, YearContext):
        year = today.year - context.offset
        label = "tahun ini" if context.offset == 0 else f"tahun {year}"
        return DateRange(start_date=date(year, 1, 1), end_date=date(year, 12, 31), description=label)

    if isinstance(context, RangeContext):
        label = (
            f"dari {format_date_id(context.start, short=True)} "
            f"sampai {format_date_id(context.end, short=True)}"
        )
        return DateRange(start_date=context.start, end_date=context.end, description=label)

    if isinstance(context, SpecificContext):
        return DateRange(
            start_date=context.day,
            end_date=context.day,
            description=f"tanggal {format_date_id(context.day)}",
        )

    raise TypeError(f"Unsupported time context: {context!r}")


def resolve_range(text: str, now: date | datetime) -> DateRange | None:
    """Shortcut for `to_date_range(resolve(text, now), now)`."""

    context = resolve(text, now)
    if context is None:
        return None
    return to_date_range(context, now)


def current_week(now: date | datetime) -> DateRange:
    return to_date_range(WeekContext(offset=0), now)


def current_month(now: date | datetime) -> DateRange:
    return to_date_range(MonthContext(offset=0), now)


def previous_month(now: date | datetime) -> DateRange:
    return to_date_range(MonthContext(offset=1), now)


def current_year(now: date | datetime) -> DateRange:
    return to_date_range(YearContext(offset=0), now)


def days_remaining_in_month(now: date | datetime) -> int:
    """Days left after today in the current month (0 on the last day)."""

    today = _today(now)
    return last_day_of_month(today.year, today.month) - today.day


def comparison_ranges(
        comparison_type: ComparisonType | None, now: date | datetime
) -> tuple[DateRange, DateRange]:
    """Current and previous period for a comparison request (month-to-month by default)."""

    if comparison_type == ComparisonType.week_to_week:
        return to_date_range(WeekContext(offset=0), now), to_date_range(WeekContext(offset=1), now)
    if comparison_type == ComparisonType.year_to_year:
        return to_date_range(YearContext(offset=0), now), to_date_range(YearContext(offset=1), now)
    return current_month(now), previous_month(now)


def budget_period_range(period: BudgetPeriod, now: date | datetime) -> DateRange:
    """The period a budget limit currently applies to."""

    if period == BudgetPeriod.daily:
        return to_date_range(DayContext(offset=0), now)
    if period == BudgetPeriod.weekly:
        return current_week(now)
    if period == BudgetPeriod.yearly:
        return current_year(now)
    return current_month(now)
