"""
Калькулятор KPI: сопоставление табеля со справочником и расчет выплат
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from kpi_timesheet.timesheet_parser import ParsedEmployee

logger = logging.getLogger(__name__)

SCHEDULE_DAY = "day"
SCHEDULE_SHIFT = "shift"
SHIFT_ALIASES = ("shift", "суточный", "суточная", "сутки")

STUDENT_CATEGORY_CODE = "4"

ERROR_DUPLICATE = "DUPLICATE"
ERROR_NO_KPI_MAPPING = "NO_KPI_MAPPING"
ERROR_STUDENT = "STUDENT"
ERROR_INVALID_PLAN = "INVALID_PLAN"
ERROR_NO_EMPLOYEES = "NO_EMPLOYEES"


@dataclass(frozen=True)
class KpiReference:
    """Информация о KPI сотрудника из справочника"""
    fio: str
    kpi_sum: float
    schedule_type: str  # 'day' или 'shift'
    department: str
    category_code: str = ""

    @classmethod
    def from_record(cls, item: Dict[str, Any]) -> "KpiReference":
        try:
            kpi_sum = float(item.get("kpiSum", 0) or 0)
        except (TypeError, ValueError):
            kpi_sum = 0.0
        if not math.isfinite(kpi_sum):
            kpi_sum = 0.0
        return cls(
            fio=str(item.get("fio", "") or "").strip(),
            kpi_sum=kpi_sum,
            schedule_type=normalize_schedule_type(item.get("scheduleType")),
            department=str(item.get("department", "") or "").strip(),
            category_code=str(item.get("categoryCode", "") or "").strip(),
        )


@dataclass
class CalculationResult:
    """Результат расчета KPI"""
    fio: str
    schedule_type: str
    department: str
    days_assigned: int
    days_worked: float
    not_worked: float
    letters_weekday: int
    letters_sat: int
    letters_sun: int
    letters_holiday: int
    numbers_weekday: int
    numbers_sat: int
    numbers_sun: int
    numbers_holiday: int
    work_percent: float
    kpi_sum: float
    kpi_final: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fio": self.fio,
            "scheduleType": self.schedule_type,
            "department": self.department,
            "daysAssigned": self.days_assigned,
            "daysWorked": self.days_worked,
            "notWorked": self.not_worked,
            "lettersWeekday": self.letters_weekday,
            "lettersSat": self.letters_sat,
            "lettersSun": self.letters_sun,
            "lettersHoliday": self.letters_holiday,
            "numbersWeekday": self.numbers_weekday,
            "numbersSat": self.numbers_sat,
            "numbersSun": self.numbers_sun,
            "numbersHoliday": self.numbers_holiday,
            "workPercent": self.work_percent,
            "kpiSum": self.kpi_sum,
            "kpiFinal": self.kpi_final,
        }


@dataclass
class CalculationError:
    """Ошибка при расчете KPI"""
    fio: str
    type: str
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return {"fio": self.fio, "type": self.type, "details": self.details}


def normalize_schedule_type(value: Any) -> str:
    """График работы: 'shift' для суточных, иначе 'day'"""
    s = str(value or "").strip().lower()
    if s in SHIFT_ALIASES:
        return SCHEDULE_SHIFT
    return SCHEDULE_DAY


def normalize_department(value: Any) -> str:
    """Ключ сравнения отделов: без регистра, пробелов, дефисов и подчеркиваний"""
    return re.sub(r"[\s\-–—_]+", "", str(value or "").strip().upper())


def no_employees_error(department: str) -> CalculationError:
    return CalculationError(
        fio="",
        type=ERROR_NO_EMPLOYEES,
        details=f"Нету никого в отделе {department}",
    )


def round_money(value: float) -> float:
    """Округление до копеек, половина вверх (100.125 -> 100.13)"""
    return math.floor(value * 100 + 0.5) / 100


def _completion(days_worked: float, days_assigned: int, kpi_sum: float) -> Tuple[float, float, float]:
    # Нормализация
    days_worked = max(0.0, min(float(days_worked), float(days_assigned)))

    work_percent = days_worked * 100.0 / days_assigned
    work_percent = max(0.0, min(100.0, work_percent))

    # Выплата считается от неокругленного процента
    kpi_final = work_percent / 100.0 * kpi_sum
    return days_worked, round_money(work_percent), round_money(kpi_final)


class KPICalculator:
    """Калькулятор KPI для дневного и суточного графиков"""

    def __init__(self, day_quota: int, shift_quota: int):
        """
        Args:
            day_quota: Норма дней для дневных сотрудников (Н.ч)
            shift_quota: Норма суток для суточных сотрудников (Н.д)
        """
        self.day_quota = day_quota
        self.shift_quota = shift_quota

    def calculate(
        self,
        employees: List[ParsedEmployee],
        kpi_table: List[KpiReference],
    ) -> Tuple[List[CalculationResult], List[CalculationError]]:
        """
        Рассчитывает KPI для всех сотрудников в порядке табеля

        Ошибки по отдельным сотрудникам не прерывают расчет остальных.

        Returns:
            Кортеж (результаты, ошибки)
        """
        kpi_map = self._build_kpi_map(kpi_table)

        results: List[CalculationResult] = []
        errors: List[CalculationError] = []
        seen_fios = set()

        for emp in employees:
            fio = str(emp.fio or "").strip()
            if not fio:
                continue

            fio_key = fio.lower()

            # Проверка на дубликаты
            if fio_key in seen_fios:
                errors.append(CalculationError(fio, ERROR_DUPLICATE, "ФИО повторяется в табеле"))
                continue
            seen_fios.add(fio_key)

            kpi_info = kpi_map.get(fio_key)
            if kpi_info is None:
                errors.append(CalculationError(fio, ERROR_NO_KPI_MAPPING, "Нет записи в KPI таблице"))
                continue

            # Исключаем студентов (categoryCode == "4")
            if kpi_info.category_code == STUDENT_CATEGORY_CODE:
                errors.append(CalculationError(
                    fio, ERROR_STUDENT, "CategoryCode = 4 (студент), KPI не считается"
                ))
                continue

            if kpi_info.schedule_type == SCHEDULE_SHIFT:
                if self.shift_quota <= 0:
                    errors.append(CalculationError(
                        fio, ERROR_INVALID_PLAN, "Н.д (назначено суточных) <= 0"
                    ))
                    continue
                results.append(self._calculate_shift_kpi(fio, emp, kpi_info))
            else:
                if self.day_quota <= 0:
                    errors.append(CalculationError(
                        fio, ERROR_INVALID_PLAN, "Н.ч (назначено дней) <= 0"
                    ))
                    continue
                results.append(self._calculate_day_kpi(fio, emp, kpi_info))

        return results, errors

    def _build_kpi_map(self, kpi_table: List[KpiReference]) -> Dict[str, KpiReference]:
        """Создает карту ФИО -> KPI информация"""
        kpi_map = {}
        for item in kpi_table:
            if item.fio:
                kpi_map[item.fio.lower()] = item
        return kpi_map

    def _calculate_day_kpi(self, fio: str, emp: ParsedEmployee, kpi_info: KpiReference) -> CalculationResult:
        """Рассчитывает KPI для дневных сотрудников"""
        days_assigned = self.day_quota

        # Н.о (не отработано) = буквы в будни
        # TODO: буквы в выходные/праздники у дневных не вычитаются: ждем решения по политике
        not_worked = emp.letters_weekday

        # Итог из табеля надежнее расчетного значения
        if emp.worked_days_total is not None:
            days_worked = emp.worked_days_total
        else:
            days_worked = days_assigned - not_worked

        days_worked, work_percent, kpi_final = _completion(days_worked, days_assigned, kpi_info.kpi_sum)

        return self._result(
            fio, emp, kpi_info, SCHEDULE_DAY, days_assigned,
            days_worked=days_worked,
            not_worked=max(days_assigned - days_worked, 0),
            work_percent=work_percent,
            kpi_final=kpi_final,
        )

    def _calculate_shift_kpi(self, fio: str, emp: ParsedEmployee, kpi_info: KpiReference) -> CalculationResult:
        """Рассчитывает KPI для суточных сотрудников"""
        days_assigned = self.shift_quota

        # Н.о = буквы в будни + буквы в субботу
        # Буквы в воскресенье/праздники не считаем
        not_worked = emp.letters_weekday + emp.letters_sat

        days_worked, work_percent, kpi_final = _completion(
            days_assigned - not_worked, days_assigned, kpi_info.kpi_sum
        )

        return self._result(
            fio, emp, kpi_info, SCHEDULE_SHIFT, days_assigned,
            days_worked=days_worked,
            not_worked=not_worked,
            work_percent=work_percent,
            kpi_final=kpi_final,
        )

    @staticmethod
    def _result(fio, emp, kpi_info, schedule_type, days_assigned, **computed) -> CalculationResult:
        return CalculationResult(
            fio=fio,
            schedule_type=schedule_type,
            department=kpi_info.department,
            days_assigned=days_assigned,
            days_worked=round_money(computed["days_worked"]),
            not_worked=computed["not_worked"],
            letters_weekday=emp.letters_weekday,
            letters_sat=emp.letters_sat,
            letters_sun=emp.letters_sun,
            letters_holiday=emp.letters_holiday,
            numbers_weekday=emp.numbers_weekday,
            numbers_sat=emp.numbers_sat,
            numbers_sun=emp.numbers_sun,
            numbers_holiday=emp.numbers_holiday,
            work_percent=computed["work_percent"],
            kpi_sum=kpi_info.kpi_sum,
            kpi_final=computed["kpi_final"],
        )


def calculate_kpi(
    employees: List[ParsedEmployee],
    kpi_table: List[KpiReference],
    day_quota: int,
    shift_quota: int,
    department: Optional[str] = None,
) -> Tuple[List[CalculationResult], List[CalculationError]]:
    """
    Расчет KPI с фильтром по отделу

    Если отдел указан, справочник и табель сужаются до этого отдела.
    Пустой набор до или после расчета дает единственную ошибку NO_EMPLOYEES.

    Args:
        employees: Сотрудники из табеля
        kpi_table: Справочник KPI
        day_quota: Норма дней для дневных (Н.ч)
        shift_quota: Норма суток для суточных (Н.д)
        department: Отдел для расчета (опционально)

    Returns:
        Кортеж (результаты, ошибки)
    """
    department = str(department or "").strip()
    calculator = KPICalculator(day_quota, shift_quota)

    if not department:
        return calculator.calculate(employees, kpi_table)

    target = normalize_department(department)
    dept_table = [item for item in kpi_table if normalize_department(item.department) == target]
    dept_fios = {item.fio.lower() for item in dept_table if item.fio}
    dept_employees = [emp for emp in employees if str(emp.fio or "").strip().lower() in dept_fios]

    if not dept_employees:
        logger.info(f"Нет сотрудников отдела {department}: справочник {len(dept_table)}, табель {len(employees)}")
        return [], [no_employees_error(department)]

    results, errors = calculator.calculate(dept_employees, dept_table)
    results = [r for r in results if normalize_department(r.department) == target]
    if not results:
        return [], [no_employees_error(department)]

    return results, errors
