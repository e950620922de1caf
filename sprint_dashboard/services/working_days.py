from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from ..models.config import DayOff

DateLike = Union[date, datetime]


def _to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def is_weekend(day: date) -> bool:
    """Verifica se o dia é sábado ou domingo"""
    # 5 = Sábado, 6 = Domingo
    return day.weekday() >= 5


def count_working_days(
    start: Optional[DateLike],
    end: Optional[DateLike],
    days_off: Iterable[DayOff] = (),
) -> int:
    """
    Conta os dias úteis entre duas datas, inclusive nas duas pontas

    Um dia é útil quando não é fim de semana e não está coberto por nenhuma
    ausência. Datas ausentes ou início após o fim resultam em zero.

    Args:
        start: Data inicial
        end: Data final
        days_off: Períodos de ausência

    Returns:
        int: Número de dias úteis
    """
    if start is None or end is None:
        return 0

    days_off = list(days_off)
    current_date = _to_date(start)
    end_date = _to_date(end)
    working_days = 0
    while current_date <= end_date:
        if not is_weekend(current_date) and not any(off.covers(current_date) for off in days_off):
            working_days += 1
        current_date += timedelta(days=1)
    return working_days
