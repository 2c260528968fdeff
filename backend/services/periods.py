"""
Résolution des périodes de rapport

- week / month / quarter / year = fenêtre glissante de 7 / 30 / 90 / 365 jours
  se terminant à "now" (jours fixes, pas de mois calendaires)
- startDate + endDate explicites = prioritaires sur period
- Comparaisons inclusives partout: $gte start, $lte end
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

from models.report import CUSTOM_PERIOD, ReportPeriod, ReportWindow
from services.report_errors import InvalidRequest

PERIOD_DAYS = {
    ReportPeriod.WEEK.value: 7,
    ReportPeriod.MONTH.value: 30,
    ReportPeriod.QUARTER.value: 90,
    ReportPeriod.YEAR.value: 365,
}

DEFAULT_PERIOD = ReportPeriod.MONTH.value

# Plage explicite max (startDate -> endDate), au-delà: 400
MAX_RANGE_DAYS = 3660

MAX_DATETIME = datetime.max.replace(tzinfo=timezone.utc)


def normalize_period(period: Optional[str]) -> str:
    """Période nommée valide, 'month' sinon."""
    if period and period.lower() in PERIOD_DAYS:
        return period.lower()
    return DEFAULT_PERIOD


def parse_datetime(value) -> Optional[datetime]:
    """
    datetime ou chaîne ISO -> datetime UTC aware.
    Naive = UTC. None / vide -> None. Chaîne illisible -> ValueError.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _is_date_only(value) -> bool:
    return isinstance(value, str) and len(value.strip()) == 10


def parse_date_bound(value, end_of_day: bool = False) -> datetime:
    """
    Borne de date explicite. "YYYY-MM-DD" en borne de fin = 23:59:59.999999
    du jour (la borne est inclusive).
    """
    try:
        dt = parse_datetime(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidRequest("Invalid date range", f"Unparsable date: {value!r}")
    if dt is None:
        raise InvalidRequest("Invalid date range", "Empty date bound")
    if end_of_day and _is_date_only(value):
        dt = datetime.combine(dt.date(), time.max, tzinfo=timezone.utc)
    return dt


def resolve_period(
    period: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReportWindow:
    """
    Résout period / startDate+endDate en fenêtre concrète.

    - Les deux bornes fournies -> elles gagnent, renvoyées telles quelles
      (start > end accepté: les agrégateurs rendent des résultats à zéro)
    - Une seule borne -> ignorée, on applique period
    - Plage de plus de MAX_RANGE_DAYS jours -> InvalidRequest
    - Sinon end = now, start = now - N jours (month par défaut)
    """
    if start_date and end_date:
        start = parse_date_bound(start_date)
        end = parse_date_bound(end_date, end_of_day=True)
        if end - start > timedelta(days=MAX_RANGE_DAYS):
            raise InvalidRequest(
                "Invalid date range", f"Date range exceeds {MAX_RANGE_DAYS} days"
            )
        return ReportWindow(start=start, end=end, period=CUSTOM_PERIOD)

    name = normalize_period(period)
    end = parse_datetime(now) if now else datetime.now(timezone.utc)
    start = end - timedelta(days=PERIOD_DAYS[name])
    return ReportWindow(start=start, end=end, period=name)


def window_length_days(start: datetime, end: datetime) -> float:
    """Durée en jours fractionnaires, minimum 1 (fenêtre vide ou nulle incluse)."""
    return max((end - start).total_seconds() / 86400, 1)


def window_days(window: ReportWindow) -> List[date]:
    """
    Jours calendaires (UTC) couverts par la fenêtre, du plus ancien au plus récent.
    - période nommée de N jours: les N derniers jours se terminant à end.date()
      (le jour partiel now - N n'est pas un créneau)
    - plage explicite: de start.date() à end.date() inclus
    [] si fenêtre vide.
    """
    if window.is_empty:
        return []
    last = window.end.date()
    if window.period in PERIOD_DAYS:
        first = last - timedelta(days=PERIOD_DAYS[window.period] - 1)
    else:
        first = window.start.date()
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def next_window(window: ReportWindow) -> Tuple[datetime, datetime]:
    """Période suivante de même durée, commençant à window.end, bornée à datetime.max"""
    if window.is_empty:
        return window.end, window.end
    span = window.end - window.start
    if MAX_DATETIME - window.end < span:
        return window.end, MAX_DATETIME
    return window.end, window.end + span


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[00:00:00, 23:59:59.999999] UTC du jour"""
    return (
        datetime.combine(day, time.min, tzinfo=timezone.utc),
        datetime.combine(day, time.max, tzinfo=timezone.utc),
    )


def in_window(value, start: datetime, end: datetime) -> bool:
    dt = parse_datetime(value)
    return dt is not None and start <= dt <= end
