from collections.abc import Iterable
from datetime import UTC
from datetime import date
from datetime import datetime
from datetime import timedelta
from datetime import tzinfo

from activity_graph.api.schemas.heatmap import ActivityRecord
from activity_graph.api.schemas.heatmap import DayCell
from activity_graph.api.schemas.heatmap import HeatmapGrid
from activity_graph.api.schemas.heatmap import MonthLabel


WEEKS_IN_WINDOW = 52
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def date_key(day: date) -> str:
    """Format a date as `YYYY-MM-DD`."""

    return day.isoformat()


def parse_date_key(raw_value: str) -> date:
    return date.fromisoformat(raw_value)


def sunday_based_weekday(day: date) -> int:
    """Return the weekday with Sunday as 0 and Saturday as 6."""

    return (day.weekday() + 1) % 7


def aggregate_by_day(
    records: Iterable[ActivityRecord], tz: tzinfo = UTC
) -> dict[date, int]:
    """Sum contributions per calendar day of each record's timestamp in tz."""

    counts_by_date: dict[date, int] = {}
    for record in records:
        day = datetime.fromtimestamp(record.timestamp, tz).date()
        counts_by_date[day] = counts_by_date.get(day, 0) + record.contributions
    return counts_by_date


def window_bounds(today: date) -> tuple[date, date]:
    """Return the first and last date of the window ending on today's Saturday."""

    end_date = today + timedelta(days=6 - sunday_based_weekday(today))
    start_date = end_date - timedelta(days=WEEKS_IN_WINDOW * 7 - 1)
    return start_date, end_date


def build_grid(
    records: Iterable[ActivityRecord],
    today: date | None = None,
    tz: tzinfo = UTC,
) -> HeatmapGrid:
    """Lay aggregated daily counts out as week columns ending this Saturday.

    A month label is emitted only on a column whose first day is a Sunday, so a
    month without such a column in the window gets no label.
    """

    counts_by_date = aggregate_by_day(records, tz)
    if today is None:
        today = datetime.now(tz).date()
    start_date, end_date = window_bounds(today)

    weeks: list[list[DayCell]] = []
    month_labels: list[MonthLabel] = []
    week: list[DayCell] = []
    last_month = None
    col = 0

    current_day = start_date
    while current_day <= end_date:
        is_sunday = sunday_based_weekday(current_day) == 0
        if is_sunday and week:
            weeks.append(week)
            week = []
            col += 1

        if is_sunday and current_day.month != last_month:
            month_labels.append(
                MonthLabel(col=col, label=MONTH_ABBREVIATIONS[current_day.month - 1])
            )
            last_month = current_day.month

        week.append(
            DayCell(
                date=current_day,
                count=counts_by_date.get(current_day, 0),
                is_today=current_day == today,
            )
        )
        current_day += timedelta(days=1)

    if week:
        weeks.append(week)

    return HeatmapGrid(
        weeks=weeks,
        month_labels=month_labels,
        max_count=max([*counts_by_date.values(), 1]),
        total=sum(counts_by_date.values()),
    )


def contribution_level(count: int, max_count: int) -> int:
    """Map a daily count to a heatmap level in range 0..4 relative to max_count."""

    if count <= 0:
        return 0
    ratio = count / max_count
    if ratio < 0.15:
        return 1
    if ratio < 0.40:
        return 2
    if ratio < 0.70:
        return 3
    return 4

