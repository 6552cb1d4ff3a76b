from datetime import date, datetime, timedelta

from config import (ZOOM_CONFIG, HEADER_HEIGHT, TIMELINE_LEAD_DAYS, TIMELINE_TAIL_DAYS,
                    EMPTY_TIMELINE_DAYS)

DATE_FORMAT = "%Y-%m-%d"

# --- Date Handling ---

def parse_date(value):
    """Turns a YYYY-MM-DD string (or date/datetime) into a naive calendar date.

    No timezone normalisation happens here: the string is read as a local
    calendar day. ISO timestamps are cut down to their date part.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Invalid date format: {value!r}. Please use YYYY-MM-DD.")
    try:
        return datetime.strptime(value.strip()[:10], DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"Invalid date format: {value!r}. Please use YYYY-MM-DD.")

def format_date(value):
    return parse_date(value).strftime(DATE_FORMAT)

def shift_date(value, days):
    """Moves a date by whole calendar days and returns it as YYYY-MM-DD."""
    return format_date(parse_date(value) + timedelta(days=days))

def has_dates(task):
    return bool(task.get('start_date')) and bool(task.get('end_date'))

def tasks_with_dates(tasks):
    """Keeps only tasks that can be placed on the timeline, in arrival order."""
    return [t for t in tasks if has_dates(t)]

# --- Axis Mapping ---

def day_width_for_zoom(zoom):
    try:
        return ZOOM_CONFIG[zoom]
    except KeyError:
        raise ValueError(f"Unknown zoom level '{zoom}'. Expected one of: {', '.join(ZOOM_CONFIG)}.")

def header_height_for_zoom(zoom):
    day_width_for_zoom(zoom)
    return HEADER_HEIGHT[zoom]

def day_offset(value, timeline_start):
    """Whole calendar days from timeline_start to value (negative if before)."""
    return (parse_date(value) - parse_date(timeline_start)).days

def pixel_position(value, timeline_start, day_width):
    return day_offset(value, timeline_start) * day_width

def duration_days(start, end):
    """Counts calendar days between two dates, inclusive of both ends."""
    return (parse_date(end) - parse_date(start)).days + 1

def bar_geometry(task, timeline_start, day_width):
    """Returns (left, width) in pixels for a dated task."""
    left = pixel_position(task['start_date'], timeline_start, day_width)
    width = duration_days(task['start_date'], task['end_date']) * day_width
    return left, width

# --- Timeline Window ---

def timeline_window(tasks, today=None):
    """Derives the visible (start, end) dates from the dated tasks.

    The window runs from a week before the earliest start to two weeks
    after the latest end. With nothing dated it is centred on today.
    """
    dated = tasks_with_dates(tasks)
    if not dated:
        today = parse_date(today) if today else date.today()
        return (today - timedelta(days=TIMELINE_LEAD_DAYS),
                today + timedelta(days=EMPTY_TIMELINE_DAYS))

    min_date = min(parse_date(t['start_date']) for t in dated)
    max_date = max(parse_date(t['end_date']) for t in dated)
    return (min_date - timedelta(days=TIMELINE_LEAD_DAYS),
            max_date + timedelta(days=TIMELINE_TAIL_DAYS))

def total_days(timeline_start, timeline_end):
    return duration_days(timeline_start, timeline_end)

def today_offset(timeline_start, timeline_end, day_width, today=None):
    """Pixel x of the today marker, or None when today is off the timeline."""
    today = parse_date(today) if today else date.today()
    offset = day_offset(today, timeline_start) * day_width
    if offset < 0 or offset > total_days(timeline_start, timeline_end) * day_width:
        return None
    return offset

def progress_percent(task):
    """Share of the estimate already logged, as a whole percentage (max 100)."""
    estimated = task.get('estimated_hours')
    actual = task.get('actual_hours')
    if not estimated or estimated <= 0 or actual is None or actual < 0:
        return 0
    return min(100, int(round(actual / estimated * 100)))

# --- Header Rows ---

def _month_start(d):
    return d.replace(day=1)

def _next_month(d):
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)

def _cell(label, first_day, last_day, timeline_start, day_width, **extra):
    cell = {
        'label': label,
        'left': day_offset(first_day, timeline_start) * day_width,
        'width': duration_days(first_day, last_day) * day_width,
        'start': first_day,
        'end': last_day,
    }
    cell.update(extra)
    return cell

def month_cells(timeline_start, timeline_end, day_width):
    """One cell per calendar month, clipped to the window."""
    start, end = parse_date(timeline_start), parse_date(timeline_end)
    cells = []
    month = _month_start(start)
    while month <= end:
        first_day = max(month, start)
        last_day = min(_next_month(month) - timedelta(days=1), end)
        cells.append(_cell(month.strftime("%B %Y"), first_day, last_day, start, day_width))
        month = _next_month(month)
    return cells

def week_cells(timeline_start, timeline_end, day_width):
    """Monday-based weeks, the first and last clipped to the window."""
    start, end = parse_date(timeline_start), parse_date(timeline_end)
    cells = []
    week = start - timedelta(days=start.weekday())
    while week <= end:
        first_day = max(week, start)
        last_day = min(week + timedelta(days=6), end)
        label = f"{first_day.strftime('%b')} {first_day.day} - {last_day.day}"
        cells.append(_cell(label, first_day, last_day, start, day_width))
        week += timedelta(weeks=1)
    return cells

def day_cells(timeline_start, timeline_end, day_width):
    start, end = parse_date(timeline_start), parse_date(timeline_end)
    cells = []
    current = start
    while current <= end:
        label = f"{current.strftime('%a')}\n{current.day}"
        cells.append(_cell(label, current, current, start, day_width, weekend=current.weekday() >= 5))
        current += timedelta(days=1)
    return cells

def header_rows(timeline_start, timeline_end, zoom, day_width=None):
    """Builds the header rows drawn above the timeline for a zoom level.

    Day and week zoom get a month row on top of a day or week row; month
    zoom gets a single month row.
    """
    if day_width is None:
        day_width = day_width_for_zoom(zoom)
    else:
        day_width_for_zoom(zoom)

    months = month_cells(timeline_start, timeline_end, day_width)
    if zoom == 'day':
        return [months, day_cells(timeline_start, timeline_end, day_width)]
    if zoom == 'week':
        return [months, week_cells(timeline_start, timeline_end, day_width)]
    return [months]
