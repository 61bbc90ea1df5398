"""
Calendar math for the agenda views.

Dates on appointments and tasks are stored the way the French UI shows them
(``DD/MM/YYYY``); forms post ISO dates (``YYYY-MM-DD``). Weeks start on Monday
and the visible day runs from 08:00 to 18:00 with 80 px per hour.
"""
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

FIRST_HOUR = 8
HOURS = list(range(FIRST_HOUR, FIRST_HOUR + 11))
ROW_HEIGHT = 80

WEEKDAYS_FR = ["lundi", "mardi", "mercredi", "jeudi", "vendredi", "samedi", "dimanche"]
MONTHS_FR = [
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
]


def fr_date(d: date) -> str:
    return d.strftime("%d/%m/%Y")


def parse_iso_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_fr_date(value: str) -> date:
    return datetime.strptime(value, "%d/%m/%Y").date()


def iso_to_fr(value: Optional[str]) -> str:
    """Convert a posted ISO date to display form; empty stays empty."""
    if not value:
        return ""
    return fr_date(parse_iso_date(value))


def start_of_week(current: date) -> date:
    return current - timedelta(days=current.weekday())


def shift_week(current: date, direction: int) -> date:
    return current + timedelta(days=7 * direction)


def week_days(current: date, today: Optional[date] = None) -> List[Dict[str, Any]]:
    today = today or date.today()
    monday = start_of_week(current)
    days = []
    for i in range(7):
        d = monday + timedelta(days=i)
        days.append({
            "label": WEEKDAYS_FR[d.weekday()],
            "day_num": d.day,
            "month": MONTHS_FR[d.month - 1],
            "full_date": fr_date(d),
            "is_today": d == today,
        })
    return days


def date_range_label(days: List[Dict[str, Any]]) -> str:
    start, end = days[0], days[-1]
    return f"{start['day_num']}/{start['full_date'].split('/')[1]} - {end['day_num']}/{end['full_date'].split('/')[1]}"


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def position(start_time: str, end_time: str) -> Dict[str, float]:
    """Vertical offset and height, in pixels, of a slot on the day grid.

    Slots before 08:00 get a negative ``top``; a slot ending before it starts
    gets a negative ``height``. Neither is clamped.
    """
    start = _minutes(start_time)
    duration = _minutes(end_time) - start
    from_first_hour = start - FIRST_HOUR * 60
    return {
        "top": from_first_hour / 60 * ROW_HEIGHT,
        "height": duration / 60 * ROW_HEIGHT,
    }


def filter_appointments(items: Iterable[Dict[str, Any]], q: str = "", collaborator: str = "") -> List[Dict[str, Any]]:
    needle = (q or "").lower()
    out = []
    for rdv in items:
        matches_search = needle in (rdv.get("title") or "").lower() or needle in (rdv.get("client_name") or "").lower()
        matches_user = (rdv.get("collaborator") or {}).get("name") == collaborator if collaborator else True
        if matches_search and matches_user:
            out.append(rdv)
    return out


def place(rdv: Dict[str, Any]) -> Dict[str, Any]:
    return {**rdv, "position": position(rdv["start_time"], rdv["end_time"])}


def day_view(current: date, items: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    wanted = fr_date(current)
    return {
        "weekday": WEEKDAYS_FR[current.weekday()],
        "label": f"{current.day} {MONTHS_FR[current.month - 1]} {current.year}",
        "full_date": wanted,
        "hours": HOURS,
        "appointments": [place(r) for r in items if r.get("date") == wanted],
    }


def week_view(current: date, items: Iterable[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    days = week_days(current, today=today)
    items = list(items)
    for day in days:
        day["appointments"] = [place(r) for r in items if r.get("date") == day["full_date"]]
    return {
        "range_label": date_range_label(days),
        "previous": shift_week(current, -1).isoformat(),
        "next": shift_week(current, 1).isoformat(),
        "hours": HOURS,
        "days": days,
    }
