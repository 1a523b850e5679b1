"""
Настройки протокола комиссии: значения по умолчанию и сохраненные переопределения
"""
import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from kpi_timesheet.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommissionMember:
    role: str
    name: str
    order: Optional[int] = None


@dataclass(frozen=True)
class MeetingDateOverride:
    year: int
    month: int
    date: str


@dataclass(frozen=True)
class ReportSettings:
    """Настройки протокола (неизменяемые, собираются один раз на запрос)"""
    protocol_number: str = "1"
    meeting_title: str = ""
    department_title: str = ""
    place: str = ""
    agenda_text: str = ""
    footer_text: str = ""
    commission_members: Tuple[CommissionMember, ...] = ()
    secretary_name: str = ""
    coordinator_role: str = ""
    meeting_date_overrides: Tuple[MeetingDateOverride, ...] = ()


DEFAULT_REPORT_SETTINGS = ReportSettings(
    protocol_number="1",
    meeting_title="Заседания комиссии по оплате и мотивации труда персонала",
    department_title="Отдел централизованный медицинский клининг-1",
    place="г.Астана, пр.Абылай – хана 42",
    agenda_text=(
        "Рассмотрение итогов работы за {{month}} месяц {{year}} года. Оценка достижения ключевых "
        "показателей работы эффективности выполнения внутренних стандартов, санитарно-эпидемиологического "
        "режима и трудовой дисциплины, степень достижения КПР каждым сотрудником {{department}}.\n"
        "Результаты фактического исполнения целевых показателей КПР за {{month}} месяц {{year}} года "
        "в соответствии с утверждённым Положением об оплате труда. Младший медицинский персонал {{department}}."
    ),
    footer_text=(
        "Передать отделу бухгалтерии результаты рассмотрения стимулирующих и мотивирующих "
        "компонентов для своевременного начисления."
    ),
    commission_members=(
        CommissionMember("Председатель", "Нурсейтова Т.Б."),
        CommissionMember("Координатор ОЦМК", "Кикимбаева Г.Т."),
        CommissionMember("Руководитель по сестринскому делу", "Мусабаева А.М"),
        CommissionMember("Руководитель отдела управления", "Кенжебаева Ш.Т"),
        CommissionMember("Главный экономист", "Мендыбаева Э.М"),
        CommissionMember("Главный бухгалтер", "Тасеменова Д.К"),
    ),
    secretary_name="Актанова К.Е",
    coordinator_role="Координатор ОЦМК",
)

# camelCase ключи сохраненных настроек -> поля ReportSettings
_TEXT_FIELDS = {
    "protocolNumber": "protocol_number",
    "meetingTitle": "meeting_title",
    "departmentTitle": "department_title",
    "place": "place",
    "agendaText": "agenda_text",
    "footerText": "footer_text",
    "secretaryName": "secretary_name",
    "coordinatorRole": "coordinator_role",
}


def _to_int(value) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_members(raw) -> Tuple[CommissionMember, ...]:
    members = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        order = item.get("order")
        members.append(CommissionMember(
            role=str(item.get("role") or "").strip(),
            name=str(item.get("name") or "").strip(),
            order=_to_int(order) if order is not None else None,
        ))
    return tuple(members)


def _parse_overrides(raw) -> Tuple[MeetingDateOverride, ...]:
    overrides = []
    for item in raw or []:
        if not isinstance(item, dict) or not item.get("date"):
            continue
        overrides.append(MeetingDateOverride(
            year=_to_int(item.get("year")) or 0,
            month=_to_int(item.get("month")) or 0,
            date=str(item["date"]).split("T")[0],
        ))
    return tuple(overrides)


def merge_report_settings(raw: Optional[Dict[str, Any]]) -> ReportSettings:
    """
    Накладывает сохраненные настройки на значения по умолчанию

    Пустые значения не перекрывают умолчания; пустой список членов
    комиссии оставляет список по умолчанию.
    """
    if not raw:
        return DEFAULT_REPORT_SETTINGS

    changes: Dict[str, Any] = {}
    for key, attr in _TEXT_FIELDS.items():
        value = raw.get(key)
        if value is not None and str(value).strip():
            changes[attr] = str(value)

    members = _parse_members(raw.get("commissionMembers"))
    if members:
        changes["commission_members"] = members

    overrides = _parse_overrides(raw.get("meetingDateOverrides"))
    if overrides:
        changes["meeting_date_overrides"] = overrides

    return replace(DEFAULT_REPORT_SETTINGS, **changes)


def load_report_settings(settings_file: Union[str, Path, None] = None) -> ReportSettings:
    """Читает сохраненные настройки протокола и накладывает их на умолчания"""
    path = Path(settings_file) if settings_file else Config.REPORT_SETTINGS_FILE
    if not path.exists():
        return DEFAULT_REPORT_SETTINGS

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Ошибка чтения настроек протокола: {e}")
        return DEFAULT_REPORT_SETTINGS

    if isinstance(raw, list):
        raw = raw[0] if raw else None
    return merge_report_settings(raw if isinstance(raw, dict) else None)


def resolve_meeting_date_override(settings: ReportSettings, year: int, month: int) -> Optional[str]:
    """Явно заданная дата заседания за год/месяц, если есть"""
    for item in settings.meeting_date_overrides:
        if item.year == year and item.month == month and item.date:
            return item.date
    return None
