# ==============================================================================
# FECHAS EN LA ZONA HORARIA DE LA TIENDA
# ==============================================================================
# "Hoy" y "este mes" se calculan como rangos de calendario en la zona de la
# tienda (por defecto America/Caracas). Los timestamps sin zona que devuelve
# el backend se interpretan como hora local de la tienda.
# ==============================================================================

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo

from bike_erp.models import parse_datetime


def shop_zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def to_shop_time(value: Any, tz: tzinfo) -> Optional[datetime]:
    """
    Convierte un valor de fecha del backend a datetime con zona de la tienda.

    Returns:
        datetime aware o None si no se puede parsear
    """
    dt = parse_datetime(value)
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def day_range(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """[00:00 del día, 00:00 del día siguiente)"""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)


def month_range(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """[día 1 del mes, día 1 del mes siguiente)"""
    first = day.replace(day=1)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return (
        datetime.combine(first, time.min, tzinfo=tz),
        datetime.combine(next_first, time.min, tzinfo=tz),
    )


def in_range(dt: Optional[datetime], start: datetime, end: datetime) -> bool:
    return dt is not None and start <= dt < end
