"""
Модуль календаря и праздничных дней
"""
import calendar
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from kpi_timesheet.config import Config
from kpi_timesheet.timesheet_parser import HOLIDAY, SATURDAY, SUNDAY, classify_day, normalize_holidays

logger = logging.getLogger(__name__)


def _iso(year: int, month: int, day: int) -> str:
    return f"{year}-{month:02d}-{day:02d}"


def normalize_holiday_input(raw: Any, year: int, month: int) -> Optional[str]:
    """
    Приводит праздник к виду YYYY-MM-DD внутри заданного месяца

    Номер дня ставится в заданный месяц, даты других месяцев отбрасываются.
    """
    days = normalize_holidays([raw], year, month)
    if not days:
        return None
    return _iso(year, month, days.pop())


def merge_holidays(persisted: Iterable[Any], adhoc: Iterable[Any], year: int, month: int) -> List[str]:
    """Объединяет сохраненные и разовые праздники без повторов (порядок сохраняется)"""
    merged: List[str] = []
    for raw in list(persisted or []) + list(adhoc or []):
        key = normalize_holiday_input(raw, year, month)
        if key and key not in merged:
            merged.append(key)
    return merged


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def last_working_date(year: int, month: int, holidays: Iterable[str]) -> str:
    """
    Последний рабочий день месяца (без субботы, воскресенья и праздников)

    Returns:
        Дата YYYY-MM-DD; последний день месяца, если рабочих дней нет
    """
    holiday_set = set(holidays or [])
    last_day = last_day_of_month(year, month)

    for d in range(last_day, 0, -1):
        key = _iso(year, month, d)
        if date(year, month, d).isoweekday() >= 6:
            continue
        if key in holiday_set:
            continue
        return key

    return _iso(year, month, last_day)


def get_days_in_month(year: int, month: int, holidays: Iterable[Any] = ()) -> List[Dict]:
    """Возвращает список всех дней месяца с их типами"""
    holiday_days: Set[int] = normalize_holidays(holidays, year, month)
    days = []
    for d in range(1, last_day_of_month(year, month) + 1):
        current = date(year, month, d)
        day_type = classify_day(year, month, d, holiday_days)
        days.append({
            "date": current.isoformat(),
            "day": d,
            "type": day_type,
            "weekday": current.isoweekday(),
            "is_weekend": day_type in (SATURDAY, SUNDAY, HOLIDAY),
        })
    return days


class CalendarManager:
    """Сохраненный календарь праздников (только чтение)"""

    def __init__(self, holidays_file: Union[str, Path, None] = None):
        self.holidays_file = Path(holidays_file) if holidays_file else Config.HOLIDAYS_FILE

    def _load_records(self) -> List[Any]:
        if not self.holidays_file.exists():
            logger.info(f"Файл праздников не найден: {self.holidays_file}")
            return []
        with open(self.holidays_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("holidays", [])
        return list(data or [])

    @staticmethod
    def _tag_matches(tag: Any, expected: int) -> bool:
        return tag is None or int(tag) == expected

    def get_holidays(self, year: int, month: int) -> List[str]:
        """
        Праздники за год/месяц в виде YYYY-MM-DD

        Записи могут быть строками ISO или объектами {date, year, month};
        у объектов учитываются теги year/month, если они заданы.
        """
        out = []
        for rec in self._load_records():
            if isinstance(rec, dict):
                try:
                    if not self._tag_matches(rec.get("year"), year):
                        continue
                    if not self._tag_matches(rec.get("month"), month):
                        continue
                except (TypeError, ValueError):
                    logger.warning(f"Пропущена запись календаря с некорректным year/month: {rec}")
                    continue
                raw = rec.get("date")
            else:
                raw = rec
            if raw is None:
                continue
            key = normalize_holiday_input(str(raw), year, month)
            if key is None:
                logger.debug(f"Праздник {raw} вне {year}-{month:02d}")
                continue
            if key not in out:
                out.append(key)
        return out
