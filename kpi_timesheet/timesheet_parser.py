"""
Универсальный парсер табеля.

Поддерживает:
  1) Шаблон ННМЦ на казахском:
     - строка с заголовком "АТЫ-жөні (толығымен)"
     - следующая строка: дни месяца (1..31)
     - часто есть колонка "өтелген күндер жиынтығы" (итого отработанных дней): используем как факт для дневных
  2) Формат с колонкой "Сотрудник" в первой строке и днями "01", "02", ..., "31".

Праздник ведет себя как отдельный тип дня: буквы и числа на празднике
считаются в отдельные счетчики и не смешиваются с буднями.
"""
import logging
import math
import re
from dataclasses import dataclass, asdict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import pandas as pd

from kpi_timesheet.workbook_loader import TimesheetFormatError, load_worksheet_grid

logger = logging.getLogger(__name__)

KZ_FIO_HEADER = "АТЫ-жөні (толығымен)"
SIMPLE_FIO_HEADER = "Сотрудник"
# "өтелген күндер жиынтығы": итого отработанных дней
TOTAL_DAYS_KEYWORDS = ("өтелген", "жиынтығы")
DEPARTMENT_HEADER_KEYS = (
    "отдел",
    "отделение",
    "подраздел",
    "подразделение",
    "департамент",
    "department",
    "dept",
    "бөлім",
    "болим",
    "бөлімше",
    "болимше",
)
# "-" и "В" (выходной): отметки без записи
EMPTY_MARKS = ("-", "В")

WEEKDAY = "weekday"
SATURDAY = "saturday"
SUNDAY = "sunday"
HOLIDAY = "holiday"

_COUNTER_SUFFIX = {
    WEEKDAY: "weekday",
    SATURDAY: "sat",
    SUNDAY: "sun",
    HOLIDAY: "holiday",
}

_NUMBER_PREFIX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass
class ParsedEmployee:
    """Данные сотрудника из табеля"""
    fio: str
    department: Optional[str] = None
    letters_weekday: int = 0
    letters_sat: int = 0
    letters_sun: int = 0
    letters_holiday: int = 0
    numbers_weekday: int = 0
    numbers_sat: int = 0
    numbers_sun: int = 0
    numbers_holiday: int = 0
    worked_days_total: Optional[float] = None

    def add_mark(self, day_type: str, is_number: bool) -> None:
        kind = "numbers" if is_number else "letters"
        field = f"{kind}_{_COUNTER_SUFFIX[day_type]}"
        setattr(self, field, getattr(self, field) + 1)

    def total_marks(self) -> int:
        return (
            self.letters_weekday + self.letters_sat + self.letters_sun + self.letters_holiday
            + self.numbers_weekday + self.numbers_sat + self.numbers_sun + self.numbers_holiday
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["workedDaysTotal"] = data.pop("worked_days_total")
        return data


# ==================== ПРАЗДНИКИ И ТИПЫ ДНЕЙ ====================

def _holiday_day_from_iso(s: str, year: int, month: int) -> Optional[int]:
    parts = s.split("T")[0].split("-")
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return None
    y, m, d = (int(p) for p in parts)
    if y == year and m == month and 1 <= d <= 31:
        return d
    return None


def normalize_holidays(holidays: Optional[Iterable[Any]], year: int, month: int) -> Set[int]:
    """
    holidays can be:
      - None
      - list like ["2025-12-16", "2025-12-17T00:00:00.000Z"]  (any year/month; we only take day part if matches)
      - list like ["16", "17"] or [16, 17]
      - records like {"date": "2025-12-16", "year": 2025, "month": 12} or date objects
    returns set of day numbers (1..31) for given year/month.
    """
    out: Set[int] = set()
    if not holidays:
        return out

    for h in holidays:
        if h is None or isinstance(h, bool):
            continue

        if isinstance(h, dict):
            h = h.get("date")
            if h is None:
                continue

        if isinstance(h, (date, datetime)):
            if h.year == year and h.month == month:
                out.add(h.day)
            continue

        if isinstance(h, (int, float)):
            if isinstance(h, float) and (math.isnan(h) or not h.is_integer()):
                continue
            if 1 <= h <= 31:
                out.add(int(h))
            continue

        s = str(h).strip()
        if not s:
            continue

        if "-" in s:
            d = _holiday_day_from_iso(s, year, month)
            if d is not None:
                out.add(d)
            else:
                logger.debug(f"Пропущен праздник {s} (не соответствует {year}-{month:02d})")
            continue

        if s.isdigit():
            d = int(s)
            if 1 <= d <= 31:
                out.add(d)

    return out


def classify_day(year: int, month: int, day_num: int, holiday_days: Set[int]) -> str:
    """
    Возвращает тип дня: 'weekday' | 'saturday' | 'sunday' | 'holiday'
    """
    if day_num in holiday_days:
        return HOLIDAY

    try:
        wd = date(year, month, day_num).isoweekday()  # 1=Пн, ..., 6=Сб, 7=Вс
    except ValueError:
        return WEEKDAY

    if wd == 6:
        return SATURDAY
    if wd == 7:
        return SUNDAY
    return WEEKDAY


# ==================== ЯЧЕЙКИ ====================

def _cell_text(val) -> str:
    if val is None:
        return ""
    if isinstance(val, float):
        if math.isnan(val):
            return ""
        if val.is_integer():
            return str(int(val))
    if val is pd.NaT:
        return ""
    return str(val).strip()


def _try_float(val) -> Optional[float]:
    """Число из начала строки ("8", "7,5", "8/4"); None, если число не найдено"""
    s = _cell_text(val).replace(",", ".", 1)
    if not s:
        return None
    match = _NUMBER_PREFIX.match(s)
    if not match:
        return None
    num = float(match.group(0))
    if math.isnan(num) or math.isinf(num):
        return None
    return num


def _is_empty_mark(val_str: str) -> bool:
    return not val_str or val_str.upper() in EMPTY_MARKS


def _find_department_column(grid: pd.DataFrame, row_idx: int, exclude: Tuple[int, ...] = ()) -> Optional[int]:
    for col in range(grid.shape[1]):
        if col in exclude:
            continue
        header = _cell_text(grid.iat[row_idx, col]).lower()
        if header and any(k in header for k in DEPARTMENT_HEADER_KEYS):
            return col
    return None


def _row_has_text(grid: pd.DataFrame, row_idx: int, text: str) -> Optional[int]:
    for col in range(grid.shape[1]):
        if _cell_text(grid.iat[row_idx, col]) == text:
            return col
    return None


def _read_employee_row(
    grid: pd.DataFrame,
    row_idx: int,
    fio: str,
    dept_col: Optional[int],
    day_cols: List[Tuple[int, int]],
    year: int,
    month: int,
    holiday_days: Set[int],
) -> ParsedEmployee:
    department = None
    if dept_col is not None:
        department = _cell_text(grid.iat[row_idx, dept_col]) or None

    emp = ParsedEmployee(fio=fio, department=department)
    for col, day_num in day_cols:
        val_str = _cell_text(grid.iat[row_idx, col])
        if _is_empty_mark(val_str):
            continue
        day_type = classify_day(year, month, day_num, holiday_days)
        emp.add_mark(day_type, _try_float(val_str) is not None)
    return emp


# ==================== ШАБЛОНЫ ТАБЕЛЯ ====================

class RosterTemplate:
    """Шаблон табеля: распознавание по заголовку и извлечение сотрудников"""

    name = ""
    marker = ""

    def probe(self, grid: pd.DataFrame) -> bool:
        raise NotImplementedError

    def extract(self, grid: pd.DataFrame, year: int, month: int, holiday_days: Set[int]) -> List[ParsedEmployee]:
        raise NotImplementedError


class KazakhRosterTemplate(RosterTemplate):
    """Шаблон ННМЦ: "АТЫ-жөні (толығымен)" + строка дней под заголовком"""

    name = "kz"
    marker = KZ_FIO_HEADER

    def _header_row(self, grid: pd.DataFrame) -> Optional[int]:
        for idx in range(len(grid.index)):
            if _row_has_text(grid, idx, KZ_FIO_HEADER) is not None:
                return idx
        return None

    def probe(self, grid: pd.DataFrame) -> bool:
        return self._header_row(grid) is not None

    def _find_total_days_column(self, grid: pd.DataFrame, header_row_idx: int) -> Optional[int]:
        # Ищем колонку "өтелген күндер жиынтығы" поблизости заголовка
        last = min(header_row_idx + 5, len(grid.index))
        for r in range(max(0, header_row_idx - 2), last):
            for col in range(grid.shape[1]):
                value = _cell_text(grid.iat[r, col]).lower()
                if all(k in value for k in TOTAL_DAYS_KEYWORDS):
                    return col
        return None

    def extract(self, grid, year, month, holiday_days):
        header_row_idx = self._header_row(grid)
        if header_row_idx is None:
            raise TimesheetFormatError(f"Не найден заголовок '{KZ_FIO_HEADER}' в табеле.")

        fio_col = _row_has_text(grid, header_row_idx, KZ_FIO_HEADER)
        dept_col = _find_department_column(grid, header_row_idx, exclude=(fio_col,))

        # Строка с днями (1..31): следующая
        day_header_idx = header_row_idx + 1
        if day_header_idx >= len(grid.index):
            raise TimesheetFormatError("В табеле нет строки с днями после заголовка.")

        day_cols = []
        for col in range(grid.shape[1]):
            s = _cell_text(grid.iat[day_header_idx, col])
            if s.isdigit() and 1 <= int(s) <= 31:
                day_cols.append((col, int(s)))

        total_days_col = self._find_total_days_column(grid, header_row_idx)
        logger.info(
            f"Шаблон ННМЦ: заголовок в строке {header_row_idx + 1}, дней {len(day_cols)}, "
            f"колонка итога {'найдена' if total_days_col is not None else 'нет'}"
        )

        employees = []
        for idx in range(day_header_idx + 1, len(grid.index)):
            fio = _cell_text(grid.iat[idx, fio_col])
            if not fio or fio == KZ_FIO_HEADER:
                continue

            emp = _read_employee_row(grid, idx, fio, dept_col, day_cols, year, month, holiday_days)
            if total_days_col is not None:
                emp.worked_days_total = _try_float(grid.iat[idx, total_days_col])
            employees.append(emp)

        return employees


class SimpleRosterTemplate(RosterTemplate):
    """Простой формат: колонка "Сотрудник" и дни "01".."31" в первой строке"""

    name = "simple"
    marker = SIMPLE_FIO_HEADER

    def probe(self, grid: pd.DataFrame) -> bool:
        return len(grid.index) > 0 and _row_has_text(grid, 0, SIMPLE_FIO_HEADER) is not None

    def extract(self, grid, year, month, holiday_days):
        if len(grid.index) == 0:
            raise TimesheetFormatError(f"Не найдена колонка \"{SIMPLE_FIO_HEADER}\"")
        fio_col = _row_has_text(grid, 0, SIMPLE_FIO_HEADER)
        if fio_col is None:
            raise TimesheetFormatError(f"Не найдена колонка \"{SIMPLE_FIO_HEADER}\"")
        dept_col = _find_department_column(grid, 0, exclude=(fio_col,))

        day_cols = []
        for col in range(grid.shape[1]):
            header = _cell_text(grid.iat[0, col])
            if len(header) == 2 and header.isdigit() and 1 <= int(header) <= 31:
                day_cols.append((col, int(header)))

        logger.info(f"Простой шаблон: дней {len(day_cols)}")

        employees = []
        for idx in range(1, len(grid.index)):
            fio = _cell_text(grid.iat[idx, fio_col])
            if not fio:
                continue
            employees.append(
                _read_employee_row(grid, idx, fio, dept_col, day_cols, year, month, holiday_days)
            )
        return employees


ROSTER_TEMPLATES: Tuple[RosterTemplate, ...] = (KazakhRosterTemplate(), SimpleRosterTemplate())


def select_template(grid: pd.DataFrame) -> RosterTemplate:
    """Выбирает шаблон табеля по заголовкам"""
    for template in ROSTER_TEMPLATES:
        if template.probe(grid):
            return template
    raise TimesheetFormatError(
        "Не удалось определить формат табеля. "
        f"Нет ни заголовка '{KZ_FIO_HEADER}', ни колонки '{SIMPLE_FIO_HEADER}'."
    )


def parse_timesheet(data: bytes, year: int, month: int, holidays=None) -> List[ParsedEmployee]:
    """
    Читает табель и считает отметки по типам дней

    Args:
        data: Содержимое файла табеля (.xls или .xlsx)
        year: Год расчета
        month: Месяц расчета
        holidays: Праздничные даты/дни (см. normalize_holidays)

    Returns:
        Список сотрудников в порядке табеля
    """
    holiday_days = normalize_holidays(holidays, year, month)
    logger.info(f"Праздничные дни {year}-{month:02d}: {sorted(holiday_days)}")

    grid = load_worksheet_grid(data)
    template = select_template(grid)
    employees = template.extract(grid, year, month, holiday_days)
    logger.info(f"Табель ({template.name}): сотрудников {len(employees)}")
    return employees
