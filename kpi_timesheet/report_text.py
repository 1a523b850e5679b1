"""
Общие тексты протоколов: месяцы, даты, шаблоны и контекст отчета
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from kpi_timesheet.calendar_manager import last_day_of_month, last_working_date
from kpi_timesheet.report_settings import CommissionMember, ReportSettings, resolve_meeting_date_override

MONTHS_NOM = (
    "январь", "февраль", "март", "апрель", "май", "июнь",
    "июль", "август", "сентябрь", "октябрь", "ноябрь", "декабрь",
)

MONTHS_GEN = (
    "января", "февраля", "марта", "апреля", "мая", "июня",
    "июля", "августа", "сентября", "октября", "ноября", "декабря",
)

SECRETARY_LABEL = "Секретарь комиссии"
TOTAL_LABEL = "Итого"


def format_date_ru(date_str: str) -> str:
    """'2025-01-31' -> '31 января 2025 г.'"""
    try:
        y, m, d = (int(x) for x in str(date_str).split("T")[0].split("-"))
    except ValueError:
        return str(date_str)
    if not (1 <= m <= 12) or not d:
        return str(date_str)
    return f"{d} {MONTHS_GEN[m - 1]} {y} г."


def format_number(value: Any) -> str:
    """Целые без дробной части, остальные: с двумя знаками"""
    if value is None or value == "":
        return ""
    try:
        num = float(value)
    except (TypeError, ValueError):
        return str(value)
    if not math.isfinite(num):
        return str(value)
    if abs(num - round(num)) < 0.00001:
        return str(int(round(num)))
    return f"{num:.2f}"


def apply_template(text: str, variables: Dict[str, str]) -> str:
    """Подстановка {{key}} без интерпретации остального текста"""
    for key, value in variables.items():
        text = text.replace("{{" + key + "}}", value)
    return text


def sort_members(members: Iterable[CommissionMember]) -> Tuple[CommissionMember, ...]:
    """Члены комиссии по полю order (без order: в конец); без роли или имени пропускаются"""
    ordered = sorted(members, key=lambda m: m.order if m.order is not None else 9999)
    return tuple(m for m in ordered if m.role and m.name)


def find_coordinator(members: Iterable[CommissionMember], coordinator_role: str) -> Optional[CommissionMember]:
    needle = (coordinator_role or "").lower()
    for member in members:
        if needle in member.role.lower():
            return member
    return None


@dataclass(frozen=True)
class ReportContext:
    """Все, что нужно для текста протокола за год/месяц"""
    settings: ReportSettings
    year: int
    month: int
    department: str
    meeting_date: str
    agenda_text: str
    footer_text: str
    members: Tuple[CommissionMember, ...]

    @property
    def month_nom(self) -> str:
        return MONTHS_NOM[self.month - 1]

    @property
    def month_gen(self) -> str:
        return MONTHS_GEN[self.month - 1]

    @property
    def last_day(self) -> int:
        return last_day_of_month(self.year, self.month)

    @property
    def protocol_title(self) -> str:
        return f"Протокол № {self.settings.protocol_number or '1'}"

    @property
    def meeting_date_line(self) -> str:
        return f"Дата заседания: {format_date_ru(self.meeting_date)}"

    @property
    def place_line(self) -> str:
        return f"Место проведения: {self.settings.place}"

    @property
    def period_line(self) -> str:
        return (
            f"Оцениваемый период: с 1 {self.month_gen} {self.year} года - "
            f"по {self.last_day} {self.month_gen} {self.year} г."
        )

    @property
    def results_title(self) -> str:
        return f"Результаты КПР за {self.month_nom} {self.year} года"

    @property
    def vote_lines(self) -> Tuple[str, ...]:
        return (
            "Члены заседания проголосовали",
            f"ЗА – {len(self.members)} человек",
            "ПРОТИВ – нет",
            "ВОЗДЕРЖАВШИХСЯ – нет",
        )

    @property
    def coordinator(self) -> Optional[CommissionMember]:
        return find_coordinator(self.members, self.settings.coordinator_role)

    @property
    def coordinator_label(self) -> str:
        return self.settings.coordinator_role or "Координатор"


def build_report_context(
    settings: ReportSettings,
    year: int,
    month: int,
    department: Optional[str],
    holidays: Iterable[str],
) -> ReportContext:
    """
    Args:
        settings: Настройки протокола (уже с умолчаниями)
        year: Год
        month: Месяц
        department: Запрошенный отдел (пусто: отдел из настроек)
        holidays: Праздники месяца YYYY-MM-DD (для даты заседания)
    """
    meeting_date = resolve_meeting_date_override(settings, year, month) or last_working_date(year, month, holidays)
    department = (department or "").strip() or settings.department_title

    variables = {
        "month": MONTHS_NOM[month - 1],
        "monthGen": MONTHS_GEN[month - 1],
        "year": str(year),
        "department": department,
    }

    return ReportContext(
        settings=settings,
        year=year,
        month=month,
        department=department,
        meeting_date=meeting_date,
        agenda_text=apply_template(settings.agenda_text, variables),
        footer_text=apply_template(settings.footer_text, variables),
        members=sort_members(settings.commission_members),
    )
