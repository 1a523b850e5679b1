"""
Расчет KPI за один запрос: табель -> расчет -> выгрузки

Справочник KPI, праздники и настройки протокола читаются один раз на расчет.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from kpi_timesheet.access import ADMIN_ACCESS, UserAccess, allowed_departments_filter, resolve_department
from kpi_timesheet.artifacts import (
    BUH_PDF,
    BUH_XLSX,
    DETAIL,
    PAYLOAD_1C,
    REPORT_PDF,
    artifact_filename,
    get_artifact_kind,
)
from kpi_timesheet.calendar_manager import CalendarManager, merge_holidays
from kpi_timesheet.excel_reports import build_1c_workbook, build_buh_workbook, build_detail_workbook
from kpi_timesheet.kpi_calculator import CalculationError, CalculationResult, calculate_kpi
from kpi_timesheet.kpi_storage import load_kpi_table
from kpi_timesheet.pdf_reports import build_buh_pdf, build_report_pdf
from kpi_timesheet.report_settings import ReportSettings, load_report_settings
from kpi_timesheet.report_text import build_report_context
from kpi_timesheet.timesheet_parser import parse_timesheet
from kpi_timesheet.utils import validate_year_month

logger = logging.getLogger(__name__)


@dataclass
class CalculationRequest:
    """Параметры расчета из запроса"""
    timesheet: bytes
    year: int
    month: int
    day_quota: int = 0  # Н.ч
    shift_quota: int = 0  # Н.д
    department: Optional[str] = None
    holidays: Sequence[Any] = ()
    access: UserAccess = ADMIN_ACCESS


@dataclass
class CalculationOutcome:
    year: int
    month: int
    department: Optional[str]
    holidays: List[str]
    results: List[CalculationResult] = field(default_factory=list)
    errors: List[CalculationError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "errors": [e.to_dict() for e in self.errors],
        }


@dataclass(frozen=True)
class Artifact:
    content: bytes
    filename: str
    mimetype: str


def validate_quotas(day_quota: int, shift_quota: int) -> None:
    if day_quota <= 0 and shift_quota <= 0:
        raise ValueError("Нужно указать Н.ч для дневных и/или Н.д для суточных")


def run_calculation(
    request: CalculationRequest,
    calendar: Optional[CalendarManager] = None,
    kpi_file=None,
) -> CalculationOutcome:
    """
    Основная логика расчета KPI

    Args:
        request: Параметры расчета
        calendar: Сохраненный календарь праздников (по умолчанию из Config)
        kpi_file: Файл справочника KPI (по умолчанию из Config)

    Returns:
        Результаты и ошибки расчета вместе с итоговым списком праздников

    Raises:
        TimesheetFormatError: Неподдерживаемый или поврежденный табель
        ValueError: Некорректные параметры
        PermissionError: Отдел вне прав пользователя
    """
    if not request.timesheet:
        raise ValueError("Не загружен файл табеля (timesheet)")
    validate_year_month(request.year, request.month)
    validate_quotas(request.day_quota, request.shift_quota)

    department = resolve_department(request.access, request.department)

    calendar = calendar or CalendarManager()
    holidays = merge_holidays(
        calendar.get_holidays(request.year, request.month),
        request.holidays,
        request.year,
        request.month,
    )

    employees = parse_timesheet(request.timesheet, request.year, request.month, holidays)
    kpi_table = load_kpi_table(kpi_file, allowed_departments_filter(request.access))

    results, errors = calculate_kpi(
        employees=employees,
        kpi_table=kpi_table,
        day_quota=request.day_quota,
        shift_quota=request.shift_quota,
        department=department,
    )
    logger.info(
        f"Расчет KPI {request.year}-{request.month:02d}"
        f"{f' ({department})' if department else ''}: "
        f"результатов {len(results)}, ошибок {len(errors)}"
    )

    return CalculationOutcome(
        year=request.year,
        month=request.month,
        department=department,
        holidays=holidays,
        results=results,
        errors=errors,
    )


def render_artifact(
    kind: str,
    outcome: CalculationOutcome,
    settings: Optional[ReportSettings] = None,
    now: Optional[datetime] = None,
) -> Artifact:
    """
    Формирует файл выгрузки по результатам расчета

    Args:
        kind: Вид выгрузки (см. artifacts.ARTIFACT_KINDS)
        outcome: Результат run_calculation
        settings: Настройки протокола (по умолчанию читаются из файла)
        now: Время для имени файла
    """
    artifact_kind = get_artifact_kind(kind)

    if kind == DETAIL:
        content = build_detail_workbook(outcome.results, outcome.errors)
    elif kind == PAYLOAD_1C:
        content = build_1c_workbook(outcome.results)
    else:
        ctx = build_report_context(
            settings or load_report_settings(),
            outcome.year,
            outcome.month,
            outcome.department,
            outcome.holidays,
        )
        if kind == BUH_XLSX:
            content = build_buh_workbook(ctx, outcome.results)
        elif kind == BUH_PDF:
            content = build_buh_pdf(ctx, outcome.results)
        elif kind == REPORT_PDF:
            content = build_report_pdf(ctx, outcome.results)
        else:
            raise ValueError(f"Неизвестный тип выгрузки: {kind}")

    return Artifact(
        content=content,
        filename=artifact_filename(kind, outcome.year, outcome.month, now),
        mimetype=artifact_kind.mimetype,
    )
